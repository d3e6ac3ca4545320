"""
Tests for the derived-name backfill worker.
"""

import pytest
from sqlalchemy import select

from db.models import Product
from workers.catalog import backfill_product_name_fields


@pytest.mark.asyncio
class TestBackfill:
    async def test_fills_missing_fields_in_batches(self, test_db):
        test_db.add_all(
            [
                Product(name="Coca Cola 1L", sku="A"),
                Product(name="Basmati Rice 5kg", sku="B"),
                Product(name="Lays Classic Salted", sku="C"),
            ]
        )
        await test_db.commit()

        result = await backfill_product_name_fields(test_db, batch_size=2)

        assert result == {"status": "success", "scanned": 3, "updated": 3}
        rows = {p.sku: p for p in (await test_db.execute(select(Product))).scalars()}
        assert rows["A"].size_free_name == "coca cola"
        assert rows["A"].extracted_volume_ml == pytest.approx(1000.0)
        assert rows["B"].extracted_weight_g == pytest.approx(5000.0)
        assert rows["C"].normalized_name == "lays classic salted"
        assert rows["C"].extracted_volume_ml is None

    async def test_rerun_skips_filled_rows(self, test_db):
        test_db.add(Product(name="Coca Cola 1L", sku="A"))
        await test_db.commit()
        await backfill_product_name_fields(test_db)

        result = await backfill_product_name_fields(test_db)

        assert result["scanned"] == 0
        assert result["updated"] == 0

    async def test_force_rescans_and_fixes_stale_rows(self, test_db):
        product = Product(name="Coca Cola 1L", sku="A")
        test_db.add_all([product, Product(name="Tata Salt 1kg", sku="B")])
        await test_db.commit()
        await backfill_product_name_fields(test_db)

        product.extracted_volume_ml = 2000.0
        await test_db.commit()

        result = await backfill_product_name_fields(test_db, force=True)

        assert result["scanned"] == 2
        assert result["updated"] == 1
        await test_db.refresh(product)
        assert product.extracted_volume_ml == pytest.approx(1000.0)
