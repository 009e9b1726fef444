"""Test configuration for pytest.

This module imports fixtures that should be available to all tests.
"""

# Import fixtures
from tests.fixtures.common import (  # noqa
    scheduler_config,
    rate_limiter,
    mock_price_client,
    price_cache,
    price_service,
    mock_transaction_source,
    sample_raw_transaction,
)
