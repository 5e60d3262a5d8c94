"""Tests for EncryptedBlobStore."""
import asyncio
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from notevault.adapters.memory_store.stores import MemoryBlobStorage
from notevault.domain.blobs.cipher import ALGORITHM_AES_256_CBC, ALGORITHM_AES_256_GCM
from notevault.domain.blobs.errors import (
    BlobNotFound,
    ConfigurationInvalid,
    DecryptionFailed,
    EncryptionFailed,
)
from notevault.domain.blobs.models import BlobRecord
from notevault.domain.blobs.ports import BlobStorage
from notevault.domain.blobs.store import BlobStoreConfig, EncryptedBlobStore

KEY = bytes(range(32))
OTHER_KEY = bytes(range(100, 132))

TEN_MB = 10 * 1024 * 1024


@pytest.fixture
def storage():
    return MemoryBlobStorage()


@pytest.fixture(params=[ALGORITHM_AES_256_GCM, ALGORITHM_AES_256_CBC])
def store(request, storage):
    return EncryptedBlobStore(BlobStoreConfig(master_key=KEY, alg=request.param), storage)


def _decrypt(store, blob, **kwargs):
    params = {"iv_hex": blob.iv, "tag_hex": blob.tag, "alg": blob.alg}
    params.update(kwargs)
    return store.decrypt(blob.locator, **params)


@pytest.mark.parametrize("plaintext", [
    b"",
    b"hello",
    b"\x00" * 15,
    b"block-aligned!!!",
    os.urandom(4097),
    b"\xab" * TEN_MB,
], ids=["empty", "hello", "15-zero", "16-aligned", "4097-random", "10mb"])
def test_round_trip(store, plaintext):
    blob = store.encrypt(plaintext)

    assert _decrypt(store, blob) == plaintext
    assert blob.size == len(plaintext)


def test_encrypt_creates_exactly_one_object(store, storage):
    blob = store.encrypt(b"payload")

    assert storage.count() == 1
    assert storage.exists(blob.locator)
    assert storage.read(blob.locator) != b"payload"


def test_encrypt_returns_lowercase_hex_iv(store):
    blob = store.encrypt(b"payload")

    assert len(blob.iv) == 32
    assert blob.iv == blob.iv.lower()
    bytes.fromhex(blob.iv)


def test_gcm_blob_carries_tag_and_cbc_does_not(storage):
    gcm = EncryptedBlobStore(BlobStoreConfig(master_key=KEY, alg=ALGORITHM_AES_256_GCM), storage)
    cbc = EncryptedBlobStore(BlobStoreConfig(master_key=KEY, alg=ALGORITHM_AES_256_CBC), storage)

    assert len(gcm.encrypt(b"a").tag) == 32
    assert cbc.encrypt(b"a").tag is None


def test_iv_uniqueness(store, storage):
    first = store.encrypt(b"same plaintext")
    second = store.encrypt(b"same plaintext")

    assert first.iv != second.iv
    assert first.locator != second.locator
    assert storage.read(first.locator) != storage.read(second.locator)


def test_existing_blobs_untouched_by_new_encrypt(store, storage):
    first = store.encrypt(b"first")
    before = storage.read(first.locator)

    store.encrypt(b"second")

    assert storage.read(first.locator) == before


def test_wrong_iv_never_returns_plaintext(store):
    plaintext = b"note attachment contents"
    blob = store.encrypt(plaintext)
    wrong_iv = bytes(b ^ 0xFF for b in bytes.fromhex(blob.iv)).hex()

    try:
        result = _decrypt(store, blob, iv_hex=wrong_iv)
    except DecryptionFailed:
        return
    assert result != plaintext


def test_different_master_key_never_returns_plaintext(store, storage):
    plaintext = b"note attachment contents"
    blob = store.encrypt(plaintext)
    other = EncryptedBlobStore(BlobStoreConfig(master_key=OTHER_KEY, alg=blob.alg), storage)

    try:
        result = _decrypt(other, blob)
    except DecryptionFailed:
        return
    assert result != plaintext


def test_gcm_detects_tampering(storage):
    store = EncryptedBlobStore(BlobStoreConfig(master_key=KEY), storage)
    blob = store.encrypt(b"do not modify")
    ciphertext = storage.read(blob.locator)
    storage.delete(blob.locator)
    storage.write(blob.locator, bytes([ciphertext[0] ^ 0x80]) + ciphertext[1:])

    with pytest.raises(DecryptionFailed):
        _decrypt(store, blob)


def test_gcm_wrong_key_always_fails(storage):
    blob = EncryptedBlobStore(BlobStoreConfig(master_key=KEY), storage).encrypt(b"secret")
    other = EncryptedBlobStore(BlobStoreConfig(master_key=OTHER_KEY), storage)

    with pytest.raises(DecryptionFailed):
        _decrypt(other, blob)


def test_decrypt_infers_algorithm_from_tag(storage):
    """Blobs stay readable after the default cipher changes."""
    gcm = EncryptedBlobStore(BlobStoreConfig(master_key=KEY, alg=ALGORITHM_AES_256_GCM), storage)
    cbc = EncryptedBlobStore(BlobStoreConfig(master_key=KEY, alg=ALGORITHM_AES_256_CBC), storage)

    legacy = cbc.encrypt(b"old blob")
    current = gcm.encrypt(b"new blob")

    assert gcm.decrypt(legacy.locator, legacy.iv) == b"old blob"
    assert cbc.decrypt(current.locator, current.iv, current.tag) == b"new blob"


def test_decrypt_missing_blob_raises_not_found(store):
    with pytest.raises(BlobNotFound) as exc_info:
        store.decrypt("mem://never-written.encrypted", "00" * 16, "00" * 16)

    assert isinstance(exc_info.value, DecryptionFailed)
    assert exc_info.value.locator == "mem://never-written.encrypted"


@pytest.mark.parametrize("bad_iv", ["", "zz" * 16, "00" * 8, "abc"])
def test_decrypt_malformed_iv(store, bad_iv):
    blob = store.encrypt(b"payload")

    with pytest.raises(DecryptionFailed):
        _decrypt(store, blob, iv_hex=bad_iv)


def test_decrypt_unknown_algorithm(store):
    blob = store.encrypt(b"payload")

    with pytest.raises(DecryptionFailed, match="Unsupported"):
        _decrypt(store, blob, alg="rot13")


def test_encrypt_file_removes_plaintext_source(store, tmp_path):
    source = tmp_path / "upload.tmp"
    source.write_bytes(b"uploaded file")

    blob = store.encrypt_file(source)

    assert not source.exists()
    assert _decrypt(store, blob) == b"uploaded file"


def test_encrypt_file_uses_given_name(store, tmp_path):
    source = tmp_path / "upload.tmp"
    source.write_bytes(b"")

    blob = store.encrypt_file(source, name="abc123")

    assert blob.locator.endswith("abc123.encrypted")
    assert blob.size == 0


def test_encrypt_file_missing_source(store, storage, tmp_path):
    with pytest.raises(EncryptionFailed):
        store.encrypt_file(tmp_path / "gone.tmp")

    assert storage.count() == 0


def test_encrypt_file_discards_blob_when_source_cannot_be_removed(store, storage, tmp_path, monkeypatch):
    source = tmp_path / "upload.tmp"
    source.write_bytes(b"uploaded file")

    def refuse_unlink(self, missing_ok=False):
        raise PermissionError(13, "Permission denied")

    monkeypatch.setattr(Path, "unlink", refuse_unlink)

    with pytest.raises(EncryptionFailed):
        store.encrypt_file(source)

    assert storage.count() == 0


def test_storage_write_failure_raises_encryption_failed():
    storage = MagicMock(spec=BlobStorage)
    storage.new_locator.return_value = "mem://x.encrypted"
    storage.write.side_effect = OSError(28, "No space left on device")
    store = EncryptedBlobStore(BlobStoreConfig(master_key=KEY), storage)

    with pytest.raises(EncryptionFailed) as exc_info:
        store.encrypt(b"payload")

    assert isinstance(exc_info.value.__cause__, OSError)
    storage.delete.assert_not_called()


def test_delete_is_idempotent(store, storage):
    blob = store.encrypt(b"payload")

    store.delete(blob.locator)
    store.delete(blob.locator)
    store.delete("mem://never-created.encrypted")

    assert not storage.exists(blob.locator)


def test_delete_swallows_storage_errors():
    storage = MagicMock(spec=BlobStorage)
    storage.delete.side_effect = PermissionError(13, "Permission denied")
    store = EncryptedBlobStore(BlobStoreConfig(master_key=KEY), storage)

    store.delete("/uploads/x.encrypted")

    storage.delete.assert_called_once_with("/uploads/x.encrypted")


def test_hello_scenario(store):
    blob = store.encrypt(b"hello")
    record = BlobRecord.from_blob(blob, file_name="f1", original_name="hello.txt", mime_type="text/plain")

    data = store.decrypt(record.encrypted_path, record.iv, record.tag, record.alg)

    assert data == b"hello"
    assert len(data) == 5
    assert record.mime_type == "text/plain"
    assert record.size == 5


def test_concurrent_operations_on_independent_locators(store):
    payloads = [os.urandom(1000 + i) for i in range(32)]

    def round_trip(payload):
        blob = store.encrypt(payload)
        result = _decrypt(store, blob)
        store.delete(blob.locator)
        return result

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(round_trip, payloads))

    assert results == payloads


def test_config_hides_master_key():
    config = BlobStoreConfig(master_key=KEY)

    assert KEY.hex() not in repr(config)
    assert str(KEY) not in repr(config)


@pytest.mark.parametrize("kwargs", [
    {"master_key": bytes(31)},
    {"master_key": bytes(64)},
    {"master_key": KEY, "alg": "aes-128-ecb"},
])
def test_config_validation(kwargs):
    with pytest.raises(ConfigurationInvalid):
        BlobStoreConfig(**kwargs)


@pytest.mark.asyncio
async def test_offloaded_calls_from_event_loop(store, storage):
    payloads = [f"note {i}".encode() for i in range(10)]

    blobs = await asyncio.gather(*(asyncio.to_thread(store.encrypt, p) for p in payloads))
    results = await asyncio.gather(*(
        asyncio.to_thread(store.decrypt, b.locator, b.iv, b.tag, b.alg) for b in blobs
    ))

    assert results == payloads
    assert storage.count() == len(payloads)
