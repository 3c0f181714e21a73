"""
Unit tests for the transcript backend boundary.
"""

import pytest

from conftest import SyntheticBackend
from tlsn_verifier.app.errors import CryptoVerifyError
from tlsn_verifier.app.transcript import RedactableTranscript, UnconfiguredBackend, load_backend

SHARED_BACKEND = SyntheticBackend()


def make_backend():
    return SyntheticBackend()


def test_empty_path_gives_unconfigured_backend():
    backend = load_backend("")
    assert isinstance(backend, UnconfiguredBackend)
    with pytest.raises(CryptoVerifyError, match="no transcript verification backend"):
        backend.verify(backend.load(b"{}"))


def test_factory_is_called():
    backend = load_backend(f"{__name__}:make_backend")
    assert isinstance(backend, SyntheticBackend)
    assert backend is not SHARED_BACKEND


def test_class_is_instantiated():
    assert isinstance(load_backend("conftest:SyntheticBackend"), SyntheticBackend)


def test_instance_used_as_is():
    assert load_backend(f"{__name__}:SHARED_BACKEND") is SHARED_BACKEND


@pytest.mark.parametrize("path", ["nocolon", "conftest:"])
def test_path_without_attribute_rejected(path):
    with pytest.raises(ValueError, match="module:attribute"):
        load_backend(path)


def test_missing_attribute_raises():
    with pytest.raises(AttributeError):
        load_backend(f"{__name__}:does_not_exist")


def test_set_unauthed_overwrites_clamped_ranges():
    transcript = RedactableTranscript(sent=b"abcdef", received=b"xyz", sent_unauthed=[(1, 3), (5, 99)], received_unauthed=[(-4, 1)])
    redacted = transcript.set_unauthed(ord("X"))
    assert redacted.sent == b"aXXdeX"
    assert redacted.received == b"Xyz"
