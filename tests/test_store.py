"""Tests for the mapping store against a real SQLite file."""
import asyncio

import pytest

from app.db import make_engine, make_session_factory
from app.errors import AppError, ErrorKind
from app.schemas import UrlFields
from app.store import MappingStore

from conftest import mapping_payload


def fields(**overrides):
    return UrlFields(**mapping_payload(**overrides))


class TestInsertAndLookup:

    def test_insert_assigns_id_and_zero_hits(self, run_with_store):
        async def scenario(store):
            return await store.insert(fields())

        row = run_with_store(scenario)
        assert row.id >= 1
        assert row.hits == 0
        assert row.created_at == row.updated_at
        assert (row.path, row.title, row.body, row.icon, row.redirect) == (
            "/x", "T", "B", "/i.png", "https://dest.example",
        )

    def test_lookup_is_exact(self, run_with_store):
        async def scenario(store):
            await store.insert(fields(path="/Promo"))
            return (
                await store.lookup_by_path("/Promo"),
                await store.lookup_by_path("/promo"),
                await store.lookup_by_path("/Promo/"),
            )

        exact, folded, trailing = run_with_store(scenario)
        assert exact is not None and exact.path == "/Promo"
        assert folded is None
        assert trailing is None

    def test_duplicate_paths_resolve_to_lowest_id(self, run_with_store):
        async def scenario(store):
            first = await store.insert(fields(redirect="https://first.example"))
            await store.insert(fields(redirect="https://second.example"))
            return first, await store.lookup_by_path("/x")

        first, found = run_with_store(scenario)
        assert found.id == first.id
        assert found.redirect == "https://first.example"

    def test_ids_are_not_reused_after_delete(self, run_with_store):
        async def scenario(store):
            a = await store.insert(fields(path="/a"))
            await store.delete(a.id)
            b = await store.insert(fields(path="/b"))
            return a.id, b.id

        deleted_id, new_id = run_with_store(scenario)
        assert new_id > deleted_id

    def test_list_all_ordered_by_id(self, run_with_store):
        async def scenario(store):
            for p in ("/c", "/a", "/b"):
                await store.insert(fields(path=p))
            return await store.list_all()

        rows = run_with_store(scenario)
        assert [r.path for r in rows] == ["/c", "/a", "/b"]
        assert [r.id for r in rows] == sorted(r.id for r in rows)


class TestUpdate:

    def test_update_replaces_mutable_fields_only(self, run_with_store):
        async def scenario(store):
            row = await store.insert(fields())
            await store.increment_hits(row.id)
            await asyncio.sleep(0.01)
            await store.update(row.id, fields(path="/y", title="T2", body="B2", icon="/j.png", redirect="https://new.example"))
            return row, (await store.list_all())[0]

        before, after = run_with_store(scenario)
        assert after.id == before.id
        assert after.hits == 1
        assert after.created_at == before.created_at
        assert after.updated_at > before.updated_at
        assert (after.path, after.title, after.body, after.icon, after.redirect) == (
            "/y", "T2", "B2", "/j.png", "https://new.example",
        )

    def test_update_missing_id_is_not_found(self, run_with_store):
        async def scenario(store):
            with pytest.raises(AppError) as excinfo:
                await store.update(999, fields())
            return excinfo.value

        err = run_with_store(scenario)
        assert err.kind is ErrorKind.NOT_FOUND
        assert err.status_code == 404


class TestDeleteAndHits:

    def test_delete_is_idempotent(self, run_with_store):
        async def scenario(store):
            row = await store.insert(fields())
            await store.delete(row.id)
            await store.delete(row.id)
            await store.delete(999)
            return await store.list_all()

        assert run_with_store(scenario) == []

    def test_increment_hits_does_not_touch_updated_at(self, run_with_store):
        async def scenario(store):
            row = await store.insert(fields())
            await store.increment_hits(row.id)
            await store.increment_hits(row.id)
            return row, await store.lookup_by_path("/x")

        before, after = run_with_store(scenario)
        assert after.hits == 2
        assert after.updated_at == before.updated_at

    def test_concurrent_increments_are_not_lost(self, run_with_store):
        async def scenario(store):
            row = await store.insert(fields())
            await asyncio.gather(*(store.increment_hits(row.id) for _ in range(10)))
            return await store.lookup_by_path("/x")

        assert run_with_store(scenario).hits == 10

    def test_increment_missing_id_is_a_noop(self, run_with_store):
        async def scenario(store):
            await store.increment_hits(12345)
            return await store.list_all()

        assert run_with_store(scenario) == []


def test_io_failure_is_wrapped_as_storage_error(tmp_path):
    url = f"sqlite+aiosqlite:///{tmp_path / 'missing-dir' / 'x.db'}"

    async def scenario():
        engine = make_engine(url)
        try:
            with pytest.raises(AppError) as excinfo:
                await MappingStore(make_session_factory(engine)).insert(fields())
            return excinfo.value
        finally:
            await engine.dispose()

    err = asyncio.run(scenario())
    assert err.kind is ErrorKind.STORAGE
    assert err.status_code == 500
    assert err.errmsg.startswith("insert failed")
    assert "OperationalError" in err.detail
