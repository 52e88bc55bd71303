"""Barcode canonicalisation and alternate encodings."""

import re
from collections.abc import Iterable
from dataclasses import dataclass

EAN13_LENGTH = 13
UPC_LENGTH = 12
GTIN14_LENGTH = 14
MIN_ALTERNATE_LENGTH = 8

_NON_DIGITS = re.compile(r"\D")


@dataclass(frozen=True)
class NormalizedBarcode:
    """A scanned code with its canonical key and retry candidates."""

    raw: str
    digits: str
    canonical: str
    alternates: tuple[str, ...]

    @property
    def is_empty(self) -> bool:
        return not self.canonical

    def lookup_variants(self) -> tuple[str, ...]:
        """Return every key shape worth trying against a keyed dataset."""
        stripped = self.digits.lstrip("0")
        candidates = [
            self.raw,
            self.digits,
            self.canonical,
            *self.alternates,
            stripped,
            stripped.zfill(UPC_LENGTH),
            stripped.zfill(EAN13_LENGTH),
            stripped.zfill(GTIN14_LENGTH),
        ]
        return _unique(candidate for candidate in candidates if candidate)


def normalize_barcode(raw: str | None) -> NormalizedBarcode:
    """Canonicalise a scanned code; never raises.

    The canonical form is digit-only and zero-padded to 13 digits. Longer codes
    lose surplus leading zeros when they fit in 13 digits and are otherwise kept.
    Input without digits yields an empty canonical form.
    """
    text = (raw or "").strip()
    digits = _NON_DIGITS.sub("", text)
    if not digits:
        return NormalizedBarcode(raw=text, digits="", canonical="", alternates=())

    stripped = digits.lstrip("0")
    if len(digits) <= EAN13_LENGTH:
        canonical = digits.zfill(EAN13_LENGTH)
    elif len(stripped) <= EAN13_LENGTH:
        canonical = stripped.zfill(EAN13_LENGTH)
    else:
        canonical = digits

    candidates = [stripped]
    if len(stripped) <= UPC_LENGTH:
        candidates.append(stripped.zfill(UPC_LENGTH))
    alternates = _unique(
        candidate
        for candidate in candidates
        if candidate != canonical and len(candidate) >= MIN_ALTERNATE_LENGTH
    )
    return NormalizedBarcode(
        raw=text, digits=digits, canonical=canonical, alternates=alternates
    )


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return tuple(seen)
