"""
Tests for EncryptedCookie.

Tests cover:
- Round-trip of JSON values through a transport
- Absent results for missing, tampered, forged, legacy-invalid and short cookies
- InvalidType surfacing for non-text transport values
- Fail-loud store (serialization and encryption errors)
- Transport attribute pass-through and cookie deletion
"""
import logging
import pytest

from navigator_cookie import (
    ABSENT,
    CannotPerformOperation,
    CookieConfig,
    CookieOptions,
    EncryptedCookie,
    InvalidType,
    MemoryTransport,
    SecretKey,
    SerializationError,
)
from navigator_cookie import cookie as cookie_module
from navigator_cookie.envelope import crypto
from navigator_cookie.envelope.crypto import (
    LEGACY_VERSION,
    VERSION_PREFIX,
    b64url_decode,
    b64url_encode,
    encrypt,
)


class BrokenCipher:
    """AEAD stand-in whose encryption always fails."""
    def __init__(self, key):
        pass

    def encrypt(self, nonce, data, aad):
        raise ValueError("cipher unavailable")


@pytest.fixture
def key():
    return SecretKey.generate()


@pytest.fixture
def transport():
    return MemoryTransport()


@pytest.fixture
def cookie(key, transport):
    return EncryptedCookie(key, transport)


# --- Round-trip ---

class TestRoundTrip:
    """Tests for store followed by fetch."""

    @pytest.mark.parametrize("value", [
        {"user": "alice", "roles": ["admin", "dev"], "nested": {"a": 1}},
        [1, 2.5, "three", None, True],
        "plain string",
        "ünïcødé ✓",
        42,
        3.14,
        False,
        {},
        [],
    ])
    def test_roundtrip(self, cookie, value):
        assert cookie.store("data", value) is True
        assert cookie.fetch("data") == value

    def test_bytes_roundtrip(self, cookie):
        cookie.store("data", {"blob": b"\x00\xff"})
        assert cookie.fetch("data") == {"blob": b"\x00\xff"}

    def test_none_is_not_absent(self, cookie):
        cookie.store("data", None)
        assert cookie.fetch("data") is None

    def test_stored_text_is_signed(self, cookie, transport):
        cookie.store("data", {"a": 1})
        assert transport.cookies["data"].startswith(VERSION_PREFIX)
        assert "alice" not in transport.cookies["data"]

    def test_chacha20_backend(self, key, transport):
        writer = EncryptedCookie(key, transport, cipher_backend="chacha20")
        writer.store("data", {"a": 1})
        reader = EncryptedCookie(key, transport)
        assert reader.fetch("data") == {"a": 1}

    def test_unsupported_backend(self, key, transport):
        with pytest.raises(ValueError):
            EncryptedCookie(key, transport, cipher_backend="des")

    def test_key_must_be_secret_key(self, transport):
        with pytest.raises(TypeError):
            EncryptedCookie(b"k" * 32, transport)

    def test_idempotent_fetch(self, cookie, transport):
        cookie.store("data", {"n": 1})
        stored = transport.cookies["data"]
        first = cookie.fetch("data")
        second = cookie.fetch("data")
        assert first == second == {"n": 1}
        assert transport.cookies["data"] == stored

    def test_from_config(self, key, transport):
        config = CookieConfig(
            secret_key=key,
            cipher_backend="chacha20",
            options=CookieOptions(path="/app"),
        )
        cookie = EncryptedCookie.from_config(config, transport)
        cookie.store("data", [1])
        assert transport.options["data"].path == "/app"
        assert b64url_decode(transport.cookies["data"])[:4] == crypto.CURRENT_VERSION_CHACHA20
        assert cookie.fetch("data") == [1]


# --- Absent results ---

class TestAbsent:
    """Tests for fetch returning the absent value."""

    def test_missing(self, cookie):
        assert cookie.fetch("missing") is ABSENT

    def test_custom_default(self, cookie):
        assert cookie.fetch("missing", default=None) is None
        assert cookie.fetch("missing", {}) == {}

    def test_absent_marker(self):
        assert not ABSENT
        assert repr(ABSENT) == "ABSENT"
        assert type(ABSENT)() is ABSENT

    def test_every_bit_flip_is_rejected(self, cookie, transport):
        cookie.store("data", {"a": 1})
        message = b64url_decode(transport.cookies["data"])
        for index in range(len(message)):
            for bit in range(8):
                tampered = bytearray(message)
                tampered[index] ^= 1 << bit
                transport.cookies["data"] = b64url_encode(tampered)
                assert cookie.fetch("data") is ABSENT, (index, bit)

    def test_text_tampering(self, cookie, transport):
        cookie.store("data", {"a": 1})
        stored = transport.cookies["data"]
        for replacement in ("A", "B", "_"):
            if stored[-1] != replacement:
                transport.cookies["data"] = stored[:-1] + replacement
                assert cookie.fetch("data") is ABSENT
        transport.cookies["data"] = stored + "A"
        assert cookie.fetch("data") is ABSENT
        transport.cookies["data"] = stored[:-8]
        assert cookie.fetch("data") is ABSENT

    def test_wrong_key(self, cookie, transport):
        cookie.store("data", {"a": 1})
        other = EncryptedCookie(SecretKey.generate(), transport)
        assert other.fetch("data") is ABSENT

    @pytest.mark.parametrize("stored", ["", "abc", "MUIEA", "3142030"])
    def test_short_input_never_decrypts(self, cookie, transport, monkeypatch, stored):
        def no_decrypt(*args, **kwargs):
            raise AssertionError("decrypt must not be called")

        monkeypatch.setattr(cookie_module, "decrypt", no_decrypt)
        transport.cookies["data"] = stored
        assert cookie.fetch("data") is ABSENT

    @pytest.mark.parametrize("stored", [
        "MUIEA!!!!!!!!",
        "not a cookie at all",
        "deadbeefdeadbeef",
        "31420400" + "00" * 40,
    ])
    def test_garbage(self, cookie, transport, stored):
        transport.cookies["data"] = stored
        assert cookie.fetch("data") is ABSENT

    def test_undeserializable_payload(self, key, cookie, transport):
        transport.cookies["data"] = encrypt(b"{not json", key)
        assert cookie.fetch("data") is ABSENT

    def test_rejections_look_alike(self, cookie, transport, caplog):
        caplog.set_level(logging.DEBUG, logger="navigator.cookie")
        cookie.store("data", {"a": 1})
        stored = transport.cookies["data"]
        other = EncryptedCookie(SecretKey.generate(), transport)
        caplog.clear()
        other.fetch("data")
        transport.cookies["data"] = "zzzzzzzzzz"
        cookie.fetch("data")
        transport.cookies["data"] = stored[:-4]
        cookie.fetch("data")
        messages = {record.getMessage() for record in caplog.records}
        assert messages == {"Rejected cookie data"}


# --- Legacy envelopes ---

class TestLegacy:
    """Tests for hex envelopes written by the previous protocol version."""

    def test_legacy_decodes(self, key, cookie, transport):
        transport.cookies["data"] = encrypt(b'{"legacy": true}', key, LEGACY_VERSION)
        assert cookie.fetch("data") == {"legacy": True}

    def test_legacy_case_change_rejected(self, key, cookie, transport):
        envelope = encrypt(b'[1]', key, LEGACY_VERSION)
        index = next(i for i, c in enumerate(envelope) if c in "abcdef")
        transport.cookies["data"] = envelope[:index] + envelope[index].upper() + envelope[index + 1:]
        assert cookie.fetch("data") is ABSENT

    def test_legacy_invalid_header_hex(self, key, cookie, transport):
        envelope = encrypt(b'[1]', key, LEGACY_VERSION)
        transport.cookies["data"] = "g" + envelope[1:]
        assert cookie.fetch("data") is ABSENT

    def test_legacy_unknown_header(self, key, cookie, transport):
        envelope = encrypt(b'[1]', key, LEGACY_VERSION)
        transport.cookies["data"] = "31420900" + envelope[8:]
        assert cookie.fetch("data") is ABSENT

    def test_legacy_tampered(self, key, cookie, transport):
        envelope = encrypt(b'[1]', key, LEGACY_VERSION)
        last = "0" if envelope[-1] != "0" else "1"
        transport.cookies["data"] = envelope[:-1] + last
        assert cookie.fetch("data") is ABSENT


# --- Type contract ---

class TestTypeContract:
    """Tests for non-text values handed back by the transport."""

    @pytest.mark.parametrize("stored", [b"MUIEAAAAAAAA", 12345678, ["MUIEA"]])
    def test_invalid_type(self, cookie, transport, stored):
        transport.cookies["data"] = stored
        with pytest.raises(InvalidType):
            cookie.fetch("data")

    def test_invalid_type_is_type_error(self, cookie, transport):
        transport.cookies["data"] = b"raw"
        with pytest.raises(TypeError):
            cookie.fetch("data")


# --- Store failures ---

class TestStoreFailures:
    """Tests for write errors reaching the caller."""

    def test_unserializable_value(self, cookie, transport):
        with pytest.raises(SerializationError):
            cookie.store("data", {"handle": object()})
        assert "data" not in transport.cookies

    def test_open_file_is_refused(self, cookie, transport, tmp_path):
        with open(tmp_path / "f.txt", "w") as handle:
            with pytest.raises(SerializationError):
                cookie.store("data", handle)
        assert "data" not in transport.cookies

    def test_encryption_failure(self, cookie, transport, monkeypatch):
        monkeypatch.setitem(crypto._CIPHERS, "aesgcm", BrokenCipher)
        with pytest.raises(CannotPerformOperation):
            cookie.store("data", {"secret": "value"})
        assert "data" not in transport.cookies

    @pytest.mark.parametrize("name", ["", "a b", "a;b", "a=b", "a,b", "a\nb", "ñ"])
    def test_invalid_name(self, cookie, name):
        with pytest.raises(ValueError):
            cookie.store(name, 1)


# --- Transport attributes ---

class TestTransportOptions:
    """Tests for attributes passed through to the transport."""

    def test_defaults(self, cookie, transport):
        cookie.store("data", 1)
        options = transport.options["data"]
        assert options == CookieOptions(
            expire=0, path="/", domain="", secure=True, httponly=True
        )

    def test_overrides(self, cookie, transport):
        cookie.store(
            "data", 1, expire=1700000000, path="/app",
            domain="example.com", secure=False, httponly=False,
        )
        options = transport.options["data"]
        assert options.expire == 1700000000
        assert options.path == "/app"
        assert options.domain == "example.com"
        assert options.secure is False
        assert options.httponly is False

    def test_explicit_options(self, cookie, transport):
        opts = CookieOptions(path="/api")
        cookie.store("data", 1, options=opts)
        assert transport.options["data"] is opts

    def test_keywords_override_explicit_options(self, cookie, transport):
        opts = CookieOptions(path="/api", domain="example.com")
        cookie.store("data", 1, options=opts, secure=False, path="/v2")
        options = transport.options["data"]
        assert options.path == "/v2"
        assert options.domain == "example.com"
        assert options.secure is False
        assert options.httponly is True
        assert opts.path == "/api"
        assert opts.secure is True

    def test_transport_result_is_returned(self, key):
        class RefusingTransport(MemoryTransport):
            def set(self, name, value, options):
                return False

        assert EncryptedCookie(key, RefusingTransport()).store("data", 1) is False

    def test_delete(self, cookie, transport):
        cookie.store("data", 1)
        assert cookie.delete("data") is True
        assert cookie.fetch("data") is ABSENT
        assert cookie.delete("data") is False


# --- Key privacy ---

class TestKeyPrivacy:
    """Tests that key material never leaks through repr."""

    def test_repr_hides_key(self, key, cookie):
        text = repr(cookie)
        assert "private" in text
        assert key.raw_bytes().hex() not in text
        assert repr(key) == "<SecretKey: private>"
