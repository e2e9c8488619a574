import json

import pytest
from sqlalchemy.exc import DatabaseError
from sqlmodel import Session

from conftest import seed_snapshot
from exceptions import PersistenceCorrupt
from models import Asset, AssetType, Currency, StorageEntry
from repositories import LoadStatus, SnapshotRepository, decode_assets, encode_assets
from repositories import snapshot_repository


@pytest.fixture
def portfolio(tsla):
    cash = Asset(id="cash-1", type=AssetType.CASH, symbol="CASH-JPY", name="JPY",
                 shares=1, price=250000, currency=Currency.JPY, updated_at=1_700_000_000_500)
    gold = Asset(id="other-1", type=AssetType.OTHER, symbol="OTHER", name="金條",
                 shares=1, price=95000.5, currency=Currency.TWD, updated_at=1_700_000_000_900)
    return [tsla, cash, gold]


def test_load_without_snapshot_is_empty(repository):
    result = repository.load()

    assert result.status == LoadStatus.EMPTY
    assert result.assets == []
    assert result.ok


def test_round_trip_preserves_order_and_values(repository, portfolio):
    repository.save(portfolio)

    result = repository.load()

    assert result.status == LoadStatus.LOADED
    assert [a.model_dump() for a in result.assets] == [a.model_dump() for a in portfolio]


def test_save_overwrites_previous_snapshot(repository, portfolio):
    repository.save(portfolio)
    repository.save(portfolio[:1])

    assert [a.id for a in repository.load().assets] == ["tsla-1"]


def test_snapshot_survives_new_repository_instance(engine, portfolio):
    SnapshotRepository(engine, key="zenwealth_assets").save(portfolio)

    reopened = SnapshotRepository(engine, key="zenwealth_assets")

    assert len(reopened.load().assets) == 3


def test_keys_are_namespaced(engine, portfolio):
    SnapshotRepository(engine, key="zenwealth_assets").save(portfolio)

    assert SnapshotRepository(engine, key="someone_else").load().status == LoadStatus.EMPTY


def test_wire_format_uses_updated_at_camel_case(tsla):
    records = json.loads(encode_assets([tsla]))

    assert records == [{
        "id": "tsla-1",
        "type": "US_STOCK",
        "symbol": "TSLA",
        "name": "TSLA",
        "shares": 10.0,
        "price": 200.0,
        "currency": "USD",
        "updatedAt": 1_700_000_000_000,
    }]


def test_decodes_browser_snapshot():
    payload = json.dumps([{
        "id": "k3j9x2a", "type": "TW_STOCK", "symbol": "2330", "name": "2330",
        "shares": 1000, "price": 580, "currency": "TWD", "updatedAt": 1718000000000
    }])

    [asset] = decode_assets(payload)

    assert asset.id == "k3j9x2a"
    assert asset.type == AssetType.TW_STOCK
    assert asset.updated_at == 1718000000000


@pytest.mark.parametrize("payload", [
    "{not json",
    '{"id": "x"}',
    '[1, 2, 3]',
    '[{"id": "x", "type": "CRYPTO", "symbol": "BTC", "name": "BTC", "shares": 1, "price": 1, "currency": "USD"}]',
    '[{"id": "x", "type": "CASH", "symbol": "CASH-TWD", "name": "TWD", "shares": 1, "price": -5, "currency": "TWD"}]',
])
def test_decode_rejects_malformed_payloads(payload):
    with pytest.raises(PersistenceCorrupt):
        decode_assets(payload)


def test_corrupt_snapshot_loads_as_empty(repository):
    seed_snapshot(repository.engine, "[{broken")

    result = repository.load()

    assert result.status == LoadStatus.CORRUPT
    assert result.assets == []
    assert not result.ok
    assert result.error


def test_unreadable_storage_loads_as_corrupt(repository, monkeypatch):
    def damaged_session(engine):
        raise DatabaseError("SELECT", {}, Exception("file is not a database"))

    monkeypatch.setattr(snapshot_repository, "Session", damaged_session)

    result = repository.load()

    assert result.status == LoadStatus.CORRUPT
    assert result.assets == []
    assert "file is not a database" in result.error


def test_save_stamps_storage_row(repository, portfolio):
    repository.save(portfolio)
    with Session(repository.engine) as session:
        first = session.get(StorageEntry, "zenwealth_assets").updated_at

    repository.save(portfolio[:1])
    with Session(repository.engine) as session:
        second = session.get(StorageEntry, "zenwealth_assets").updated_at

    assert first is not None
    assert second >= first


def test_clear(repository, portfolio):
    repository.save(portfolio)

    assert repository.clear() is True
    assert repository.clear() is False
    assert repository.load().status == LoadStatus.EMPTY
