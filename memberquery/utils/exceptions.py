"""커스텀 HTTP 예외 클래스 모듈.

Custom HTTP exception classes module.
Provides pre-configured HTTPException subclasses for the error kinds the
query layer raises. Repositories and services raise them directly; the
HTTP layer turns them into responses without extra mapping.

Storage failures are not wrapped: SQLAlchemy exceptions propagate unchanged.

Usage:
    from memberquery.utils.exceptions import InvalidArgumentError, NotFoundError
    raise NotFoundError("Member not found")
    raise InvalidArgumentError("limit must be positive")
"""

from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    """404 Not Found 예외 — 단건 조회 결과가 없을 때 사용.

    404 Not Found exception.
    Raised when a single-result lookup (member by id, member by username)
    yields zero rows.

    Args:
        detail: 오류 메시지 (Error message, default: "Resource not found")
    """

    def __init__(self, detail: str = "Resource not found") -> None:
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class InvalidArgumentError(HTTPException):
    """400 Bad Request 예외 — 잘못된 호출 인자 시 사용.

    400 Bad Request exception.
    Raised for caller contract violations such as a non-positive page limit,
    a negative offset, or an expression that names an unknown field.

    Args:
        detail: 오류 메시지 (Error message, default: "Invalid argument")
    """

    def __init__(self, detail: str = "Invalid argument") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
