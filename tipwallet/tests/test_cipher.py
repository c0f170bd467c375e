"""
Tests for password-based key encryption.
"""

from __future__ import annotations

import base64
import json
from unittest.mock import patch

import pytest
from conftest import WIF_COMPRESSED

from tipwallet.cipher import (
    CipherError,
    JsonCipherFormat,
    OpenSSLCipherFormat,
    PasswordCipher,
    cipher_for,
    evp_bytes_to_key,
)


# Produced with: openssl enc -aes-256-cbc -md md5 -salt -pass pass:hunter2 -base64 -A
OPENSSL_VECTOR = (
    "U2FsdGVkX1+1woa70uwl9OwbJCcViMWdgJ4AGIx1qOf8pdrudqsyJIaG+QQZLWO9"
    "Y/1dXtx42A6MoCM5bDWAQrofMDETc63XkDpXvB4Xpfc="
)
VECTOR_SALT = "b5c286bbd2ec25f4"
VECTOR_KEY = "bae6c5c786453714ac3c8125c2583b55f102d8997c567d13051243a4afd6d764"
VECTOR_IV = "a36c6b64ee1618dbcafb39209f412d59"
VECTOR_CT = (
    "ec1b24271588c59d809e00188c75a8e7fca5daee76ab32248686f904192d63bd"
    "63fd5d5edc78d80e8ca023396c358042ba1f30311373add7903a57bc1e17a5f7"
)


@pytest.fixture(params=["openssl", "json"])
def cipher(request: pytest.FixtureRequest) -> PasswordCipher:
    return cipher_for(request.param)


class TestEvpBytesToKey:
    def test_sizes(self) -> None:
        key, iv = evp_bytes_to_key(b"password", b"saltsalt")
        assert len(key) == 32
        assert len(iv) == 16

    def test_salt_changes_key(self) -> None:
        assert evp_bytes_to_key(b"pw", b"aaaaaaaa") != evp_bytes_to_key(b"pw", b"bbbbbbbb")

    def test_matches_openssl(self) -> None:
        key, iv = evp_bytes_to_key(b"hunter2", bytes.fromhex(VECTOR_SALT))
        assert key.hex() == VECTOR_KEY
        assert iv.hex() == VECTOR_IV


class TestStoredCiphertexts:
    """Keys persisted by other OpenSSL-compatible tools must decrypt."""

    def test_openssl_blob(self) -> None:
        assert cipher_for("openssl").decrypt(OPENSSL_VECTOR, "hunter2") == WIF_COMPRESSED

    def test_json_blob(self) -> None:
        blob = json.dumps({"ct": VECTOR_CT, "iv": VECTOR_IV, "s": VECTOR_SALT})
        assert cipher_for("json").decrypt(blob, "hunter2") == WIF_COMPRESSED

    def test_wrong_password(self) -> None:
        with pytest.raises(CipherError):
            cipher_for("openssl").decrypt(OPENSSL_VECTOR, "hunter3")


class TestPasswordCipher:
    def test_roundtrip(self, cipher: PasswordCipher) -> None:
        blob = cipher.encrypt(WIF_COMPRESSED, "hunter2")
        assert WIF_COMPRESSED not in blob
        assert cipher.decrypt(blob, "hunter2") == WIF_COMPRESSED

    def test_unicode_password(self, cipher: PasswordCipher) -> None:
        blob = cipher.encrypt(WIF_COMPRESSED, "pässwörd ✓")
        assert cipher.decrypt(blob, "pässwörd ✓") == WIF_COMPRESSED

    def test_wrong_password(self, cipher: PasswordCipher) -> None:
        blob = cipher.encrypt(WIF_COMPRESSED, "correct horse")
        with pytest.raises(CipherError):
            cipher.decrypt(blob, "battery staple")

    def test_random_salt(self, cipher: PasswordCipher) -> None:
        assert cipher.encrypt(WIF_COMPRESSED, "pw") != cipher.encrypt(WIF_COMPRESSED, "pw")

    @pytest.mark.parametrize("blob", ["", "garbage", "{}", "U2FsdGVkX18="])
    def test_malformed_blob(self, cipher: PasswordCipher, blob: str) -> None:
        with pytest.raises(CipherError):
            cipher.decrypt(blob, "pw")

    def test_formats_share_ciphertext(self) -> None:
        salt = b"\x01" * 8
        with patch("tipwallet.cipher.os.urandom", return_value=salt):
            openssl_blob = cipher_for("openssl").encrypt("secret", "pw")
            json_blob = cipher_for("json").encrypt("secret", "pw")

        raw = base64.b64decode(openssl_blob)
        obj = json.loads(json_blob)
        assert raw[:8] == b"Salted__"
        assert raw[8:16] == salt
        assert raw[16:] == bytes.fromhex(obj["ct"])
        assert obj["s"] == salt.hex()
        assert obj["iv"] == evp_bytes_to_key(b"pw", salt)[1].hex()


class TestFormats:
    def test_default_format_is_openssl(self) -> None:
        assert isinstance(PasswordCipher().format, OpenSSLCipherFormat)

    def test_cipher_for(self) -> None:
        assert isinstance(cipher_for("json").format, JsonCipherFormat)
        with pytest.raises(ValueError):
            cipher_for("rot13")

    def test_formats_are_not_interchangeable(self) -> None:
        blob = cipher_for("json").encrypt("secret", "pw")
        with pytest.raises(CipherError):
            cipher_for("openssl").decrypt(blob, "pw")
