import sys
from pathlib import Path

import pytest

# Make `analytics`, `models`, `utils`, ... importable without installing the project
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(scope="session")
def demo_table_path() -> Path:
    """The sample order export shipped with the demo."""
    return PROJECT_ROOT / "data" / "demo_customer_orders_under50.csv"
