# tests/test_consultaremedios_source.py

"""Tests for the Consulta Remédios API client."""

import random
import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from src.sources.consultaremedios_source import ConsultaRemediosSource
from src.storage.price_cache import PriceCache

SAMPLE_BODY = {
    "products": [
        {
            "price": 11.75,
            "in_stock": True,
            "url": "https://consultaremedios.com.br/dipirona/p",
            "pharmacy": {"name": "Pague Menos", "state": "CE"},
        },
        {
            "price": "14.20",
            "in_stock": False,
            "pharmacy": {"name": "Drogaria Pacheco"},
        },
    ]
}


def _resp(status: int = 200, body: object = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body if body is not None else SAMPLE_BODY
    return resp


def _source(transport: MagicMock) -> ConsultaRemediosSource:
    source = ConsultaRemediosSource(
        cache=PriceCache(enabled=True),
        transport=transport,
        rng=random.Random(42),
    )
    source.api_key = "cr-key"
    source.use_synthetic = False
    return source


class TestConsultaRemediosSource(unittest.IsolatedAsyncioTestCase):
    """ConsultaRemediosSource behaviour."""

    async def test_parses_nested_pharmacy(self) -> None:
        transport = MagicMock()
        transport.get = AsyncMock(return_value=_resp())
        records = await _source(transport).search("Dipirona", "SP")

        self.assertEqual(len(records), 2)
        self.assertEqual(records[0].vendor_label, "Pague Menos")
        self.assertEqual(records[0].region, "CE")
        self.assertEqual(records[0].price, Decimal("11.75"))
        self.assertTrue(records[0].available)
        # Missing pharmacy state falls back to the requested region
        self.assertEqual(records[1].region, "SP")
        self.assertFalse(records[1].available)

    async def test_request_shape(self) -> None:
        transport = MagicMock()
        transport.get = AsyncMock(return_value=_resp())
        source = _source(transport)
        await source.search("Paracetamol", "PR")

        call = transport.get.await_args
        self.assertEqual(
            call.args[0], f"{source.base_url}/v1/products/search"
        )
        self.assertEqual(
            call.kwargs["params"],
            {"name": "Paracetamol", "state": "PR", "limit": 8},
        )
        self.assertEqual(call.kwargs["headers"]["X-API-Key"], "cr-key")

    async def test_malformed_body_falls_back(self) -> None:
        resp = _resp()
        resp.json.side_effect = ValueError("not json")
        transport = MagicMock()
        transport.get = AsyncMock(return_value=resp)
        records = await _source(transport).search("Dipirona", "SP")

        self.assertEqual(transport.get.await_count, 1)
        self.assertEqual(
            [r.vendor_label for r in records],
            ["Pague Menos", "Farmácia São João", "Drogaria Pacheco"],
        )
        self.assertTrue(all(r.is_synthetic for r in records))

    async def test_bad_products_skipped(self) -> None:
        body = {
            "products": [
                {"price": float("nan"), "pharmacy": {"name": "Extrafarma"}},
                {"price": 9.5, "pharmacy": "Drogaria Pacheco"},
                {"price": "10.40", "pharmacy": {"name": "Pague Menos"}},
            ]
        }
        transport = MagicMock()
        transport.get = AsyncMock(return_value=_resp(body=body))
        records = await _source(transport).search("Dipirona", "SP")

        self.assertEqual(transport.get.await_count, 1)
        self.assertEqual(
            [(r.vendor_label, r.price) for r in records],
            [("Pague Menos", Decimal("10.40"))],
        )
        self.assertFalse(records[0].is_synthetic)

    async def test_empty_products_is_empty_result(self) -> None:
        transport = MagicMock()
        transport.get = AsyncMock(return_value=_resp(body={"products": []}))
        records = await _source(transport).search("Dipirona", "SP")
        self.assertEqual(records, [])


if __name__ == "__main__":
    unittest.main()
