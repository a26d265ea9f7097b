"""지연 평가 projection 쿼리."""
from __future__ import annotations

from typing import Any, Callable, Generic, Iterable, Iterator, List, Optional, TypeVar

from sqlalchemy.orm import Query

T = TypeVar("T")

Shaper = Callable[[Iterable[Any]], Iterator[T]]
"""쿼리 결과 row 들을 projection 객체로 바꾸는 함수 타입."""


class Projection(Generic[T]):
    """:class:`Query` 와 결과 변환 함수를 묶은 지연 평가 쿼리입니다.

    ``filter()``, ``order_by()`` 는 새 :class:`Projection` 을 리턴하므로 조건을 계속
    조합할 수 있고, 실제 SQL 은 순회(``iter``, ``all``, ``first``)할 때만 실행됩니다.
    """

    def __init__(self, query: Query, shaper: Shaper[T]):
        self.query = query
        self.shaper = shaper

    def __repr__(self) -> str:
        return f"Projection[{self.query}]"

    def __iter__(self) -> Iterator[T]:
        return self.shaper(iter(self.query))

    def filter(self, *criterion: Any) -> Projection[T]:
        return Projection(self.query.filter(*criterion), self.shaper)

    def order_by(self, *clauses: Any) -> Projection[T]:
        return Projection(self.query.order_by(*clauses), self.shaper)

    def all(self) -> List[T]:
        return list(self)

    def first(self) -> Optional[T]:
        return next(iter(self), None)
