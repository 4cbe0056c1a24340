from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

SRC = Path(__file__).resolve().parents[1] / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from salesrecon.parsers import ParserContext  # noqa: E402
from salesrecon.pricing import MasterPricing  # noqa: E402
from salesrecon.product_mapping import ProductCatalog  # noqa: E402


FIXED_NOW = datetime(2025, 8, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def catalog() -> ProductCatalog:
    return ProductCatalog.from_yaml()


@pytest.fixture
def context(catalog: ProductCatalog) -> ParserContext:
    return ParserContext(catalog=catalog, pricing=MasterPricing(), now=FIXED_NOW)


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW
