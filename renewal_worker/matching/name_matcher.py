from typing import ClassVar

import icu  # type: ignore[import-untyped]


class NameMatcher:
    """Permissive customer-name comparison for OCR'd receipts.

    Names are folded to lowercase ASCII with ICU and whitespace is collapsed.
    Two names match when they are equal or either contains the other, which
    tolerates truncated names and extra honorifics.
    """

    _ICU_TRANSFORM: ClassVar[str] = "Any-Latin; Latin-ASCII; Lower"

    def __init__(self) -> None:
        self._transliterator: icu.Transliterator = icu.Transliterator.createInstance(
            self._ICU_TRANSFORM
        )

    def fold(self, name: str) -> str:
        return " ".join(self._transliterator.transliterate(name).split())

    def matches(self, extracted: str | None, expected: str | None) -> bool:
        if not extracted or not expected:
            return False
        left = self.fold(extracted)
        right = self.fold(expected)
        if not left or not right:
            return False
        return left == right or left in right or right in left
