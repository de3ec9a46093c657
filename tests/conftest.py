import pytest
from solders.keypair import Keypair

from fakes import FakeChain, StubFeeEstimator, make_transfer_tx


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def fee_estimator() -> StubFeeEstimator:
    return StubFeeEstimator()


@pytest.fixture
def payer() -> Keypair:
    return Keypair()


@pytest.fixture
def make_tx():
    return make_transfer_tx
