"""
Tests for the versioned scheme catalogue
"""
import asyncio

import pytest

from welfare_engine.exceptions import InvalidTransition, NotFound, ValidationError, VersionConflict
from welfare_engine.models.scheme import SchemeRecord, SchemeStatus
from welfare_engine.services.catalogue_service import SchemeCatalogue
from welfare_engine.services.scheme_store import InMemorySchemeStore


class SlowStore(InMemorySchemeStore):
    """Store whose writes yield to the event loop before landing"""

    async def append_version(self, record):
        await asyncio.sleep(0.01)
        await super().append_version(record)


def test_upsert_creates_first_version(catalogue, make_scheme):
    async def scenario():
        record = await catalogue.upsert("S1", make_scheme(age={"min": 60}))
        assert record.version == 1
        assert record.status == SchemeStatus.ACTIVE
        assert (await catalogue.get_current("S1")) == record

    asyncio.run(scenario())


def test_versions_strictly_increase_and_stay_fetchable(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(name="Pension", age={"min": 60}))
        for i in range(4):
            await catalogue.upsert("S1", {"description": f"revision {i}"})

        versions = await catalogue.list_versions("S1")
        assert [v.version for v in versions] == [1, 2, 3, 4, 5]
        first = await catalogue.get_version("S1", 1)
        assert first.description == ""
        assert first.name == "Pension"
        assert (await catalogue.get_version("S1", 3)).description == "revision 1"
        assert (await catalogue.get_current("S1")).description == "revision 3"

    asyncio.run(scenario())


def test_upsert_never_mutates_previous_version(catalogue, make_scheme):
    async def scenario():
        v1 = await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        await catalogue.upsert("S1", {"eligibility": {"age": {"min": 21}}})
        stored_v1 = await catalogue.get_version("S1", 1)
        assert stored_v1 == v1
        assert stored_v1.eligibility.age.min == 18

    asyncio.run(scenario())


def test_upsert_requires_name(catalogue):
    async def scenario():
        with pytest.raises(ValidationError):
            await catalogue.upsert("S1", {"eligibility": {"age": {"min": 18}}})

    asyncio.run(scenario())


def test_upsert_requires_criterion_or_open_to_all(catalogue):
    async def scenario():
        with pytest.raises(ValidationError):
            await catalogue.upsert("S1", {"name": "Nothing declared"})
        record = await catalogue.upsert("S1", {"name": "Open scheme", "open_to_all": True})
        assert record.eligibility.is_empty()

    asyncio.run(scenario())


def test_upsert_rejects_protected_fields(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        with pytest.raises(ValidationError):
            await catalogue.upsert("S1", {"status": "inactive"})
        with pytest.raises(ValidationError):
            await catalogue.upsert("S1", {"version": 10})

    asyncio.run(scenario())


def test_upsert_rejects_inverted_range(catalogue, make_scheme):
    async def scenario():
        with pytest.raises(ValidationError):
            await catalogue.upsert("S1", make_scheme(age={"min": 60, "max": 18}))
        with pytest.raises(NotFound):
            await catalogue.get_current("S1")

    asyncio.run(scenario())


def test_stale_base_version_conflicts(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        await catalogue.upsert("S1", {"description": "v2"}, base_version=1)
        with pytest.raises(VersionConflict) as exc_info:
            await catalogue.upsert("S1", {"description": "late"}, base_version=1)
        assert exc_info.value.current_version == 2

    asyncio.run(scenario())


def test_concurrent_upserts_on_same_base_version():
    async def scenario():
        catalogue = SchemeCatalogue(SlowStore())
        await catalogue.upsert("S1", {"name": "Scheme", "open_to_all": True})
        results = await asyncio.gather(
            catalogue.upsert("S1", {"description": "first"}, base_version=1),
            catalogue.upsert("S1", {"description": "second"}, base_version=1),
            return_exceptions=True
        )
        written = [r for r in results if isinstance(r, SchemeRecord)]
        conflicts = [r for r in results if isinstance(r, VersionConflict)]
        assert len(written) == 1
        assert len(conflicts) == 1
        assert written[0].version == 2
        assert (await catalogue.get_current("S1")).version == 2

    asyncio.run(scenario())


def test_concurrent_upserts_without_base_version_are_serialized():
    async def scenario():
        catalogue = SchemeCatalogue(SlowStore())
        await catalogue.upsert("S1", {"name": "Scheme", "open_to_all": True})
        await asyncio.gather(*[
            catalogue.upsert("S1", {"description": f"write {i}"}) for i in range(5)
        ])
        versions = await catalogue.list_versions("S1")
        assert [v.version for v in versions] == [1, 2, 3, 4, 5, 6]

    asyncio.run(scenario())


def test_writes_to_different_ids_do_not_conflict():
    async def scenario():
        catalogue = SchemeCatalogue(SlowStore())
        records = await asyncio.gather(*[
            catalogue.upsert(f"S{i}", {"name": f"Scheme {i}", "open_to_all": True})
            for i in range(3)
        ])
        assert [r.version for r in records] == [1, 1, 1]

    asyncio.run(scenario())


def test_inactive_cannot_be_reactivated(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        await catalogue.set_status("S1", SchemeStatus.INACTIVE)
        with pytest.raises(InvalidTransition):
            await catalogue.set_status("S1", SchemeStatus.ACTIVE)
        current = await catalogue.get_current("S1", include_inactive=True)
        assert current.status == SchemeStatus.INACTIVE

    asyncio.run(scenario())


def test_inactive_cannot_be_suspended(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        await catalogue.set_status("S1", SchemeStatus.INACTIVE)
        with pytest.raises(InvalidTransition):
            await catalogue.set_status("S1", SchemeStatus.SUSPENDED)

    asyncio.run(scenario())


def test_suspension_and_reinstatement(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        suspended = await catalogue.set_status("S1", SchemeStatus.SUSPENDED)
        assert suspended.version == 2
        assert (await catalogue.get_current("S1")).status == SchemeStatus.SUSPENDED
        assert await catalogue.list_active() == []

        reinstated = await catalogue.set_status("S1", "active")
        assert reinstated.version == 3
        assert [r.scheme_id for r in await catalogue.list_active()] == ["S1"]

    asyncio.run(scenario())


def test_discontinued_scheme_keeps_history(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        await catalogue.set_status("S1", SchemeStatus.INACTIVE)

        with pytest.raises(NotFound):
            await catalogue.get_current("S1")
        assert (await catalogue.get_version("S1", 1)).status == SchemeStatus.ACTIVE
        assert (await catalogue.get_version("S1", 2)).status == SchemeStatus.INACTIVE

    asyncio.run(scenario())


def test_same_status_is_noop(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        record = await catalogue.set_status("S1", SchemeStatus.ACTIVE)
        assert record.version == 1

    asyncio.run(scenario())


def test_unknown_scheme_lookups(catalogue):
    async def scenario():
        with pytest.raises(NotFound):
            await catalogue.get_current("missing")
        with pytest.raises(NotFound):
            await catalogue.get_version("missing", 1)
        with pytest.raises(NotFound):
            await catalogue.set_status("missing", SchemeStatus.SUSPENDED)
        with pytest.raises(NotFound):
            await catalogue.flag_inconsistency("missing", "bad data")

    asyncio.run(scenario())


def test_list_active_ordering_and_filter(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("h2", make_scheme(name="Zeta Health", category="health", age={"min": 1}))
        await catalogue.upsert("a1", make_scheme(name="Beta Farm", category="agriculture", age={"min": 1}))
        await catalogue.upsert("h1", make_scheme(name="Alpha Health", category="health", age={"min": 1}))
        await catalogue.upsert("a2", make_scheme(name="Alpha Farm", category="agriculture", age={"min": 1}))
        await catalogue.upsert("gone", make_scheme(name="Gone", category="agriculture", age={"min": 1}))
        await catalogue.set_status("gone", SchemeStatus.INACTIVE)

        ordered = [r.scheme_id for r in await catalogue.list_active()]
        assert ordered == ["a2", "a1", "h1", "h2"]
        health = [r.scheme_id for r in await catalogue.list_active(category="Health")]
        assert health == ["h1", "h2"]

    asyncio.run(scenario())


def test_flags_are_advisory(catalogue, make_scheme):
    async def scenario():
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        flag = await catalogue.flag_inconsistency("S1", "Income limit differs from gazette")
        assert flag.scheme_id == "S1"
        assert not flag.resolved

        current = await catalogue.get_current("S1")
        assert current.version == 1
        assert current.status == SchemeStatus.ACTIVE
        assert [r.scheme_id for r in await catalogue.list_active()] == ["S1"]
        flags = await catalogue.list_flags("S1", open_only=True)
        assert [f.description for f in flags] == ["Income limit differs from gazette"]

    asyncio.run(scenario())


def test_localized_names(catalogue):
    async def scenario():
        record = await catalogue.upsert("S1", {
            "name": "Old Age Pension",
            "name_translations": {"hi": "वृद्धावस्था पेंशन", "mr": "वृद्धापकाळ निवृत्तीवेतन"},
            "open_to_all": True
        })
        assert record.localized_name("hi") == "वृद्धावस्था पेंशन"
        assert record.localized_name("hi-IN") == "वृद्धावस्था पेंशन"
        assert record.localized_name("ta") == "Old Age Pension"
        assert record.localized_name(None) == "Old Age Pension"

    asyncio.run(scenario())


def test_write_locks_are_released(catalogue, make_scheme):
    async def scenario():
        with pytest.raises(NotFound):
            await catalogue.set_status("missing", SchemeStatus.SUSPENDED)
        with pytest.raises(ValidationError):
            await catalogue.upsert("broken", {"name": "No criteria"})
        await catalogue.upsert("S1", make_scheme(age={"min": 18}))
        assert catalogue._write_locks == {}

    asyncio.run(scenario())


def test_write_locks_released_after_concurrent_writes():
    async def scenario():
        catalogue = SchemeCatalogue(SlowStore())
        await asyncio.gather(*[
            catalogue.upsert("S1", {"name": "Scheme", "open_to_all": True}) for _ in range(3)
        ])
        assert [v.version for v in await catalogue.list_versions("S1")] == [1, 2, 3]
        assert catalogue._write_locks == {}

    asyncio.run(scenario())
