"""쿼리 표현식 패키지 — 필드/연산자 표현식과 검색 조건식 빌더.

Query expression package — Field/operator expressions and the member
search predicate builder.
"""
