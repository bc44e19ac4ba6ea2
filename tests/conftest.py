from datetime import date

import pytest


@pytest.fixture
def today() -> date:
    return date(2024, 3, 1)
