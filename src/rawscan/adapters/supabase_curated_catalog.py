"""Supabase implementation of the curated product catalog."""

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from supabase import Client

from rawscan.services.barcodes import normalize_barcode
from rawscan.services.providers import CuratedCatalog


@dataclass
class SupabaseCuratedCatalog(CuratedCatalog):
    """Supabase-backed curated catalog, one row per declared barcode.

    Rows match on their declared barcode or on its canonical 13-digit form.
    """

    client: Client
    table: str = "curated_products"

    async def lookup(self, keys: Sequence[str]) -> Mapping[str, object] | None:
        """Return the row for the first key with an entry."""
        if not keys:
            return None
        rows = await asyncio.to_thread(self._select, _declared_forms(keys))
        by_barcode: dict[str, Mapping[str, object]] = {}
        for row in rows:
            by_barcode.setdefault(str(row.get("barcode")), row)
        for row in rows:
            canonical = normalize_barcode(str(row.get("barcode"))).canonical
            if canonical:
                by_barcode.setdefault(canonical, row)
        for key in keys:
            row = by_barcode.get(key)
            if row is not None:
                return row
        return None

    def _select(self, keys: list[str]) -> list[dict[str, object]]:
        response = (
            self.client.table(self.table).select("*").in_("barcode", keys).execute()
        )
        return response.data or []


def _declared_forms(keys: Sequence[str]) -> list[str]:
    """Expand lookup keys with the shapes a row may have been declared under."""
    forms: dict[str, None] = {}
    for key in keys:
        forms.setdefault(key, None)
        barcode = normalize_barcode(key)
        for form in (barcode.canonical, *barcode.alternates):
            if form:
                forms.setdefault(form, None)
    return list(forms)
