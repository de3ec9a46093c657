import asyncio

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st
from solders.keypair import Keypair

from fakes import FakeChain, StubFeeEstimator, make_transfer_tx, no_sleep
from liqgate.domain.commitment import Commitment
from liqgate.engines.execution.confirmation_oracle import ConfirmationOracle
from liqgate.engines.execution.submission_state import SubmissionState
from liqgate.engines.execution.transaction_submitter import TransactionSubmitter
from liqgate.errors import ExpirationError, OnChainExecutionError, TransientNetworkError
from liqgate.ports.chain import SignatureStatus


def make_submitter(chain, fee_estimator, payer, **kwargs) -> TransactionSubmitter:
    oracle = ConfirmationOracle(chain, default_address=str(payer.pubkey()))
    kwargs.setdefault("confirm_interval", 0)
    kwargs.setdefault("sleep", no_sleep)
    return TransactionSubmitter(chain, fee_estimator, oracle, **kwargs)


@pytest.mark.anyio
async def test_confirms_on_first_attempt(chain, fee_estimator, payer, make_tx):
    chain.confirm_after_sends = 1
    submitter = make_submitter(chain, fee_estimator, payer)
    tx = make_tx(payer)

    signature = await submitter.submit(tx, [payer], fee_reference_account="Pool111")

    assert signature == chain.sent[0]
    assert len(chain.sent) == 1
    assert tx.priority_fee_micro_lamports == 30_000
    assert tx.last_valid_block_height == 1_100
    assert fee_estimator.calls == ["Pool111"]
    assert submitter.last_submission.state is SubmissionState.CONFIRMED


@pytest.mark.anyio
async def test_configured_tier_is_attached(chain, fee_estimator, payer, make_tx):
    chain.confirm_after_sends = 1
    submitter = make_submitter(chain, fee_estimator, payer, fee_tier="medium")
    tx = make_tx(payer)

    await submitter.submit(tx, [payer])

    assert tx.priority_fee_micro_lamports == 20_000
    # fee instruction appended exactly once
    assert len(tx.instructions) == 2


@pytest.mark.anyio
async def test_rebroadcasts_until_confirmed(chain, fee_estimator, payer, make_tx):
    chain.confirm_after_sends = 3
    submitter = make_submitter(chain, fee_estimator, payer)

    signature = await submitter.submit(make_tx(payer), [payer])

    assert len(chain.sent) == 3
    assert set(chain.sent) == {signature}
    assert submitter.last_submission.sends == 3


@pytest.mark.anyio
async def test_send_errors_are_absorbed(chain, fee_estimator, payer, make_tx):
    chain.send_error = TransientNetworkError("sendTransaction", "connection reset")
    chain.confirm_after_sends = 2
    submitter = make_submitter(chain, fee_estimator, payer)

    signature = await submitter.submit(make_tx(payer), [payer])

    assert signature == chain.sent[-1]
    assert len(chain.sent) == 2


@pytest.mark.anyio
async def test_expires_when_height_passes_window(chain, fee_estimator, payer, make_tx):
    chain.height_step = 60
    submitter = make_submitter(chain, fee_estimator, payer)
    tx = make_tx(payer)

    with pytest.raises(ExpirationError) as exc:
        await submitter.submit(tx, [payer])

    assert exc.value.last_valid_block_height == 1_100
    assert exc.value.observed_height == 1_120
    assert exc.value.signature == chain.sent[0]
    assert len(chain.sent) == 2
    assert all(h < 1_100 for h in chain.heights_at_send)
    assert submitter.last_submission.state is SubmissionState.EXPIRED


@pytest.mark.anyio
async def test_caller_window_is_respected(chain, fee_estimator, payer, make_tx):
    submitter = make_submitter(chain, fee_estimator, payer)
    tx = make_tx(payer, last_valid_block_height=999)

    with pytest.raises(ExpirationError):
        await submitter.submit(tx, [payer])

    assert chain.sent == []
    assert submitter.last_submission.state is SubmissionState.EXPIRED


@pytest.mark.anyio
async def test_no_broadcast_at_last_valid_height(chain, fee_estimator, payer, make_tx):
    chain.height_step = 100
    submitter = make_submitter(chain, fee_estimator, payer)
    tx = make_tx(payer, last_valid_block_height=1_100)

    with pytest.raises(ExpirationError) as exc:
        await submitter.submit(tx, [payer])

    assert chain.heights_at_send == [1_000]
    assert exc.value.observed_height == 1_100


class LateLandingChain(FakeChain):
    """Reports the transaction confirmed only from the second status read on."""

    async def get_signature_status(self, signature):
        status = await super().get_signature_status(signature)
        if self.status_calls >= 2:
            return SignatureStatus(signature, 5, None, Commitment.CONFIRMED)
        return status


@pytest.mark.anyio
async def test_final_check_catches_late_landing(fee_estimator, payer, make_tx):
    chain = LateLandingChain()
    chain.height_step = 200
    submitter = make_submitter(chain, fee_estimator, payer)

    signature = await submitter.submit(make_tx(payer), [payer])

    assert signature == chain.sent[0]
    assert len(chain.sent) == 1
    assert submitter.last_submission.state is SubmissionState.CONFIRMED


@pytest.mark.anyio
async def test_on_chain_failure_is_not_retried(chain, fee_estimator, payer, make_tx):
    chain.confirm_after_sends = 1
    chain.land_error = "InstructionError(2, Custom(6001))"
    submitter = make_submitter(chain, fee_estimator, payer)

    with pytest.raises(OnChainExecutionError) as exc:
        await submitter.submit(make_tx(payer), [payer])

    assert exc.value.reason == "InstructionError(2, Custom(6001))"
    assert len(chain.sent) == 1
    assert submitter.last_submission.state is SubmissionState.FAILED


@pytest.mark.anyio
async def test_max_attempts_bounds_loop_without_height(chain, fee_estimator, payer, make_tx):
    chain.height_error = TransientNetworkError("getBlockHeight", "timeout")
    submitter = make_submitter(chain, fee_estimator, payer, max_attempts=5)
    tx = make_tx(payer)

    with pytest.raises(ExpirationError) as exc:
        await submitter.submit(tx, [payer])

    assert len(chain.sent) == 5
    assert exc.value.observed_height is None
    assert tx.last_valid_block_height is None


@pytest.mark.anyio
async def test_missing_signer_fails_before_broadcast(chain, fee_estimator, payer, make_tx):
    submitter = make_submitter(chain, fee_estimator, payer)

    with pytest.raises(ValueError):
        await submitter.submit(make_tx(payer), [Keypair()])

    assert chain.sent == []


def test_rejects_unknown_fee_tier(chain, fee_estimator, payer):
    with pytest.raises(ValueError):
        make_submitter(chain, fee_estimator, payer, fee_tier="ludicrous")


@settings(max_examples=40, deadline=None, suppress_health_check=[HealthCheck.too_slow])
@given(
    confirm_at=st.one_of(st.none(), st.integers(min_value=1, max_value=6)),
    land_error=st.one_of(st.none(), st.just("InstructionError(0, Custom(1))")),
    height_step=st.integers(min_value=0, max_value=80),
)
def test_submit_always_ends_in_one_terminal_state(confirm_at, land_error, height_step):
    payer = Keypair()
    chain = FakeChain()
    chain.confirm_after_sends = confirm_at
    chain.land_error = land_error
    chain.height_step = height_step
    submitter = make_submitter(chain, StubFeeEstimator(), payer, max_attempts=8)
    tx = make_transfer_tx(payer)

    try:
        asyncio.run(submitter.submit(tx, [payer]))
        outcome = SubmissionState.CONFIRMED
    except OnChainExecutionError:
        outcome = SubmissionState.FAILED
    except ExpirationError:
        outcome = SubmissionState.EXPIRED

    assert submitter.last_submission.state is outcome
    assert all(h is None or h < tx.last_valid_block_height for h in chain.heights_at_send)
    if confirm_at is None:
        assert outcome is SubmissionState.EXPIRED
