try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import re

import pytest

from tiktok_relay.clients.tiktok_auth import (
    code_challenge,
    generate_code_verifier,
    generate_state,
)
from tiktok_relay.services.pkce_sessions import PendingAuthorizationStore


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_code_challenge_is_hex_sha256() -> None:
    assert (
        code_challenge("abc")
        == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"
    )


def test_code_challenge_is_deterministic() -> None:
    verifier = generate_code_verifier()

    assert code_challenge(verifier) == code_challenge(verifier)


def test_code_verifier_uses_unreserved_characters() -> None:
    verifier = generate_code_verifier()

    assert len(verifier) == 64
    assert re.fullmatch(r"[A-Za-z0-9\-._~]+", verifier)
    assert generate_code_verifier() != verifier


@pytest.mark.parametrize("length", [42, 129])
def test_code_verifier_length_is_bounded(length: int) -> None:
    with pytest.raises(ValueError):
        generate_code_verifier(length)


def test_states_are_unique() -> None:
    assert generate_state() != generate_state()


def test_flow_is_consumed_once() -> None:
    sessions = PendingAuthorizationStore(ttl_seconds=600)
    flow = sessions.create()

    assert sessions.consume(flow.state) is flow
    assert sessions.consume(flow.state) is None


def test_concurrent_logins_do_not_clobber_each_other() -> None:
    sessions = PendingAuthorizationStore(ttl_seconds=600)
    first = sessions.create()
    second = sessions.create()

    assert first.code_verifier != second.code_verifier
    assert sessions.consume(first.state).code_verifier == first.code_verifier
    assert sessions.consume(second.state).code_verifier == second.code_verifier


def test_expired_flow_is_discarded() -> None:
    clock = FakeClock()
    sessions = PendingAuthorizationStore(ttl_seconds=60, clock=clock)
    flow = sessions.create()

    clock.now += 61

    assert sessions.consume(flow.state) is None
    assert len(sessions) == 0


def test_flow_challenge_matches_its_verifier() -> None:
    flow = PendingAuthorizationStore().create()

    assert flow.code_challenge == code_challenge(flow.code_verifier)
