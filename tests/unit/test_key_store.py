"""
Unit tests for device key loading.
"""

import json

import pytest

from push_mfa_simulator.config import Settings
from push_mfa_simulator.exceptions import KeyLoadError, KeySourceError
from push_mfa_simulator.security.keys import (
    FileKeySource,
    KeyMaterialStore,
    PackageResourceKeySource,
    parse_key_document,
)

PRIVATE_MEMBERS = {"d", "p", "q", "dp", "dq", "qi"}


@pytest.fixture
def bundled_document():
    return PackageResourceKeySource().read()


@pytest.fixture
def key_file(tmp_path, bundled_document):
    path = tmp_path / "device-jwk.json"
    path.write_text(json.dumps(bundled_document), encoding="utf-8")
    return path


def test_bundled_key_loads(key_material):
    assert key_material.key_id == "DEVICE_KEY_ID"
    assert key_material.algorithm == "RS256"
    assert key_material.public_jwk["kty"] == "RSA"
    assert key_material.source.startswith("bundled resource")


def test_public_jwk_has_no_private_members(key_material):
    assert not PRIVATE_MEMBERS & set(key_material.public_jwk)
    assert "d" in key_material.private_jwk


def test_private_jwk_is_not_serialized(key_material):
    assert "private_jwk" not in key_material.model_dump()
    assert "private_jwk" not in repr(key_material)


def test_file_source_wins_over_bundled(key_file):
    store = KeyMaterialStore([FileKeySource(str(key_file)), PackageResourceKeySource()])
    material = store.load()
    assert material.source == f"file {key_file}"


def test_missing_file_falls_back_to_bundled(tmp_path):
    store = KeyMaterialStore(
        [FileKeySource(str(tmp_path / "absent.json")), PackageResourceKeySource()]
    )
    material = store.load()
    assert material.source.startswith("bundled resource")


def test_unreadable_file_falls_back_to_bundled(tmp_path):
    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding="utf-8")
    store = KeyMaterialStore([FileKeySource(str(broken)), PackageResourceKeySource()])
    assert store.load().source.startswith("bundled resource")


def test_no_usable_source_raises_key_load_error(tmp_path):
    store = KeyMaterialStore(
        [
            FileKeySource(str(tmp_path / "absent.json")),
            PackageResourceKeySource(resource="resources/keys/absent.json"),
        ]
    )
    with pytest.raises(KeyLoadError) as exc_info:
        store.load()
    assert len(exc_info.value.attempts) == 2
    assert "No usable device key material" in str(exc_info.value)


def test_load_is_cached(key_file):
    store = KeyMaterialStore([FileKeySource(str(key_file))])
    first = store.load()
    key_file.unlink()
    assert store.load() is first


def test_from_settings_orders_file_source_first(key_file):
    settings = Settings(jwk_path=str(key_file), _env_file=None)
    store = KeyMaterialStore.from_settings(settings)
    assert isinstance(store.sources[0], FileKeySource)
    assert isinstance(store.sources[-1], PackageResourceKeySource)


def test_from_settings_without_path_uses_bundled_only():
    store = KeyMaterialStore.from_settings(Settings(jwk_path=None, _env_file=None))
    assert len(store.sources) == 1
    assert isinstance(store.sources[0], PackageResourceKeySource)


def test_document_without_private_exponent_is_rejected(bundled_document):
    del bundled_document["private"]["d"]
    with pytest.raises(KeySourceError):
        parse_key_document(bundled_document)


def test_mismatched_pair_is_rejected(bundled_document):
    bundled_document["public"]["e"] = "Aw"
    with pytest.raises(KeySourceError, match="not a pair"):
        parse_key_document(bundled_document)


def test_document_must_be_an_object():
    with pytest.raises(KeySourceError):
        parse_key_document(["public", "private"])
