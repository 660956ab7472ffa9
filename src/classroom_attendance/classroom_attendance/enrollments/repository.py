from __future__ import annotations

from typing import Iterable, Mapping, Protocol


class EnrollmentRepository(Protocol):
    """Read access to class membership (managed by the class directory)."""

    def is_enrolled(self, student_id: int, class_id: int) -> bool:
        raise NotImplementedError

    def count_by_class(self, class_ids: Iterable[int]) -> Mapping[int, int]:
        """Number of enrolled students per class; classes without students may be absent."""

        raise NotImplementedError
