import pytest

from othello_protocol.protocol.constants import V1_SHAPE, Version
from othello_protocol.protocol.errors import VersionMismatch
from othello_protocol.protocol.version import NegotiationState, VersionNegotiator

from conftest import make_channel

SUPPORTED = {Version.V1_0_0, Version.V2_0_0_RC1}


@pytest.mark.parametrize("tag", sorted(SUPPORTED))
def test_accepts_supported_versions(tag):
    assert VersionNegotiator(SUPPORTED).validate(tag) == tag


@pytest.mark.parametrize("tag", ["v1.0.1", "v2.0.0", "v2.0.0-rc2", "1.0.0", "v1.0", "V1.0.0", "", "hello"])
def test_rejects_everything_else(tag):
    with pytest.raises(VersionMismatch):
        VersionNegotiator(SUPPORTED).validate(tag)


def test_gui_handshake_binds_session_to_v1():
    channel, _ = make_channel(["v1.0.0"])
    negotiator = VersionNegotiator(SUPPORTED)

    session = negotiator.accept(channel, timeout=1)

    assert negotiator.state is NegotiationState.NEGOTIATED
    assert session.version == Version.V1_0_0
    assert session.codec.shape is V1_SHAPE
    assert not session.is_legacy


def test_gui_handshake_refuses_unknown_version():
    channel, _ = make_channel(["v1.0.1"])
    negotiator = VersionNegotiator(SUPPORTED)

    with pytest.raises(VersionMismatch):
        negotiator.accept(channel, timeout=1)
    assert negotiator.state is NegotiationState.AWAITING_HANDSHAKE
    assert negotiator.session is None


def test_gui_handshake_on_closed_channel():
    channel, _ = make_channel([])

    with pytest.raises(VersionMismatch):
        VersionNegotiator(SUPPORTED).accept(channel, timeout=1)


def test_ai_announces_its_version():
    channel, written = make_channel([])
    negotiator = VersionNegotiator(SUPPORTED)

    session = negotiator.announce(channel, Version.V2_0_0_RC1)

    assert written.getvalue() == "v2.0.0-rc1\n"
    assert session.version == Version.V2_0_0_RC1


def test_ai_cannot_announce_unsendable_version():
    channel, written = make_channel([])

    with pytest.raises(VersionMismatch):
        VersionNegotiator(["v1 beta"]).announce(channel, "v1 beta")
    with pytest.raises(VersionMismatch):
        VersionNegotiator(SUPPORTED).announce(channel, "v9.9.9")
    assert written.getvalue() == ""


def test_configured_tags_need_not_follow_the_usual_pattern():
    negotiator = VersionNegotiator({"draft-7"})
    channel, _ = make_channel(["draft-7"])

    assert negotiator.validate(" draft-7 ") == "draft-7"
    assert negotiator.accept(channel, timeout=1).version == "draft-7"
    with pytest.raises(VersionMismatch, match="Malformed"):
        VersionNegotiator({"draft-7"}).validate("draft-8")
    with pytest.raises(VersionMismatch, match="not supported"):
        VersionNegotiator({"draft-7"}).validate("v1.0.0")


def test_legacy_session_skips_handshake():
    channel, written = make_channel([])
    negotiator = VersionNegotiator(SUPPORTED)

    session = negotiator.legacy()

    assert session.is_legacy
    assert session.codec.shape.allows_notes
    assert written.getvalue() == ""


def test_no_renegotiation():
    channel, _ = make_channel(["v1.0.0", "v2.0.0-rc1"])
    negotiator = VersionNegotiator(SUPPORTED)
    negotiator.accept(channel, timeout=1)

    with pytest.raises(RuntimeError):
        negotiator.accept(channel, timeout=1)
    with pytest.raises(RuntimeError):
        negotiator.legacy()


def test_session_counts_turns():
    session = VersionNegotiator(SUPPORTED).legacy()

    assert session.turns == 0
    assert session.next_turn() == 1
    assert session.next_turn() == 2
    assert "legacy" in repr(session)
