"""Tests for adapter resolution."""

import pytest

from pix_gateway.errors import ProviderNotFound
from pix_gateway.models.transaction import Owner, Provider
from pix_gateway.providers import registry
from pix_gateway.providers.base import ProviderConfig
from pix_gateway.providers.registry import normalize_provider_name, resolve, resolve_by_name, resolve_for_owner
from pix_gateway.providers.subadq_a import SubadqAAdapter
from pix_gateway.providers.subadq_b import SubadqBAdapter


def _config(name: str, active: bool = True) -> ProviderConfig:
    return ProviderConfig(name=name, base_url="https://provider.test", config={}, active=active)


class TestNormalizeName:
    @pytest.mark.parametrize("name", ["SubadqA", "subadqa", "Subadq A", "subadq-a", "SUBADQ_A", " Subadq.A "])
    def test_variants_share_a_key(self, name):
        assert normalize_provider_name(name) == "subadqa"

    def test_empty_name(self):
        assert normalize_provider_name("") == ""


class TestResolve:
    def test_resolves_shipped_adapters(self):
        assert isinstance(resolve(_config("SubadqA")), SubadqAAdapter)
        assert isinstance(resolve(_config("subadq-b")), SubadqBAdapter)

    def test_adapter_gets_frozen_snapshot(self):
        provider = Provider(id=1, name="SubadqA", base_url="https://a.test", config={"seller_id": "S1"}, active=True)
        adapter = resolve(provider)

        assert adapter.provider.config["seller_id"] == "S1"
        with pytest.raises(TypeError):
            adapter.provider.config["seller_id"] = "other"

        # Later edits to the row do not leak into the resolved adapter
        provider.config = {"seller_id": "S2"}
        assert adapter.provider.config["seller_id"] == "S1"

    def test_unknown_provider_fails_closed(self):
        with pytest.raises(ProviderNotFound) as exc:
            resolve(_config("SubadqZ"))
        assert exc.value.http_status == 404
        assert exc.value.reason == "not_registered"
        assert exc.value.provider_name == "SubadqZ"

    def test_inactive_provider_is_refused(self):
        with pytest.raises(ProviderNotFound) as exc:
            resolve(_config("SubadqA", active=False))
        assert exc.value.http_status == 403
        assert exc.value.reason == "inactive"

    def test_registered_type_must_be_an_adapter(self, monkeypatch):
        monkeypatch.setitem(registry.REGISTRY, "subadqa", dict)
        with pytest.raises(ProviderNotFound) as exc:
            resolve(_config("SubadqA"))
        assert exc.value.reason == "invalid_adapter"


@pytest.mark.asyncio
async def test_resolve_for_owner(seeded_session):
    owner = await seeded_session.get(Owner, "owner-b")
    adapter = resolve_for_owner(owner)
    assert isinstance(adapter, SubadqBAdapter)
    assert adapter.provider.config["seller_id"] == "SELLER-1"


@pytest.mark.asyncio
async def test_owner_without_provider(seeded_session):
    owner = await seeded_session.get(Owner, "owner-none")
    with pytest.raises(ProviderNotFound) as exc:
        resolve_for_owner(owner)
    assert exc.value.reason == "not_configured"
    assert exc.value.http_status == 404


@pytest.mark.asyncio
async def test_resolve_by_name_matches_loosely(seeded_session):
    adapter = await resolve_by_name(seeded_session, "subadq_a")
    assert isinstance(adapter, SubadqAAdapter)
    assert adapter.name == "SubadqA"


@pytest.mark.asyncio
async def test_resolve_by_name_unknown(seeded_session):
    with pytest.raises(ProviderNotFound):
        await resolve_by_name(seeded_session, "nope")
