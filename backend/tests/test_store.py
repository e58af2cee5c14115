from __future__ import annotations

import asyncio
from typing import List
from uuid import UUID

import pytest

from taskboard.core.errors import NotFoundError, PersistenceError, UnauthenticatedError, ValidationError
from taskboard.services.board import partition
from taskboard.services.persistence.base import PersistenceAdapter
from taskboard.services.records import Err, Ok, TaskRecord, utcnow
from taskboard.services.store import TaskStore


async def _signed_in_store(provider, adapter, email="ann@example.com", name="Ann"):
    user = await provider.sign_up(email, "pw", name)
    store = TaskStore(adapter)
    await store.load(user.id)
    return user, store


def test_add_task_prepends_incomplete_task(backend) -> None:
    provider, adapter = backend

    async def scenario():
        user, store = await _signed_in_store(provider, adapter)
        first = await store.add_task("first")
        second = await store.add_task("second")
        return user, store, first, second

    user, store, first, second = asyncio.run(scenario())

    assert isinstance(first, Ok) and isinstance(second, Ok)
    assert [t.text for t in store.tasks] == ["second", "first"]
    assert all(t.owner_id == user.id and t.completed is False for t in store.tasks)


@pytest.mark.parametrize("text", ["", "   "])
def test_add_blank_task_leaves_store_unchanged(backend, text) -> None:
    provider, adapter = backend

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        return store, await store.add_task(text)

    store, result = asyncio.run(scenario())

    assert isinstance(result, Err)
    assert isinstance(result.error, ValidationError)
    assert store.tasks == ()


def test_toggle_twice_restores_original_state(backend) -> None:
    provider, adapter = backend

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        task = (await store.add_task("flip")).value
        once = await store.toggle_task(task.id)
        states = [store.get_task(task.id).completed]
        await store.toggle_task(task.id)
        states.append(store.get_task(task.id).completed)
        return once, states

    once, states = asyncio.run(scenario())

    assert once.ok
    assert states == [True, False]


def test_update_task_batch(backend) -> None:
    provider, adapter = backend

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        task = (await store.add_task("draft")).value
        result = await store.update_task(task.id, text="final", completed=True)
        blank = await store.update_task(task.id, text=" ")
        return store, task, result, blank

    store, task, result, blank = asyncio.run(scenario())

    assert result.ok
    assert store.get_task(task.id).text == "final"
    assert store.get_task(task.id).completed is True
    assert isinstance(blank.error, ValidationError)


def test_remove_task_drops_comments_and_partitions(backend) -> None:
    provider, adapter = backend

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        task = (await store.add_task("buy milk")).value
        await store.add_comment(task.id, "get 2%")
        removed = await store.remove_task(task.id)
        return store, task, removed

    store, task, removed = asyncio.run(scenario())

    assert removed == Ok(True)
    assert store.comments_for(task.id) == []
    board = partition(store.tasks)
    assert task.id not in {t.id for t in board.incomplete + board.complete}


def test_add_blank_comment_fails(backend) -> None:
    provider, adapter = backend

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        task = (await store.add_task("t")).value
        return store, task, await store.add_comment(task.id, "")

    store, task, result = asyncio.run(scenario())

    assert not result.ok
    assert isinstance(result.error, ValidationError)
    assert store.comments_for(task.id) == []


def test_comments_for_keeps_chronological_order(backend) -> None:
    provider, adapter = backend

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        a = (await store.add_task("a")).value
        b = (await store.add_task("b")).value
        await store.add_comment(a.id, "one")
        await store.add_comment(b.id, "other")
        await store.add_comment(a.id, "two")
        removed = await store.remove_comment(store.comments_for(b.id)[0].id)
        return store, a, b, removed

    store, a, b, removed = asyncio.run(scenario())

    assert [c.content for c in store.comments_for(a.id)] == ["one", "two"]
    assert removed.ok
    assert store.comments_for(b.id) == []


def test_load_reflects_persisted_state(backend) -> None:
    provider, adapter = backend

    async def scenario():
        user, store = await _signed_in_store(provider, adapter)
        task = (await store.add_task("persisted")).value
        await store.add_comment(task.id, "note")
        fresh = TaskStore(adapter)
        await fresh.load(user.id)
        return fresh

    fresh = asyncio.run(scenario())

    assert [t.text for t in fresh.tasks] == ["persisted"]
    assert [c.content for c in fresh.comments] == ["note"]


def test_mutations_require_loaded_owner(backend) -> None:
    _, adapter = backend
    store = TaskStore(adapter)

    result = asyncio.run(store.add_task("nobody"))

    assert isinstance(result.error, UnauthenticatedError)


def test_unknown_task_is_not_found(backend) -> None:
    provider, adapter = backend

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        return await store.toggle_task(12345), await store.remove_task(12345)

    toggled, removed = asyncio.run(scenario())

    assert isinstance(toggled.error, NotFoundError)
    assert isinstance(removed.error, NotFoundError)


def test_subscribers_notified_and_clear_empties(backend) -> None:
    provider, adapter = backend
    calls: List[int] = []

    async def scenario():
        _, store = await _signed_in_store(provider, adapter)
        store.subscribe(lambda s: calls.append(len(s.tasks)))
        await store.add_task("one")
        store.clear()
        return store

    store = asyncio.run(scenario())

    assert calls == [1, 0]
    assert store.owner_id is None
    assert store.tasks == () and store.comments == ()


class _FlakyAdapter(PersistenceAdapter):
    """Lists work, every write fails."""

    def __init__(self, task: TaskRecord, fail_comments: bool = False):
        self.task = task
        self.fail_comments = fail_comments

    async def list_tasks(self, *, owner_id: UUID):
        return [self.task]

    async def list_comments_for_owner(self, *, owner_id: UUID):
        if self.fail_comments:
            raise PersistenceError("comments unreachable")
        return []

    async def create_task(self, *, owner_id, text):
        raise PersistenceError("write rejected")

    async def update_task(self, *, task_id, changes, owner_id=None):
        raise PersistenceError("write rejected")


def _task(owner_id: UUID) -> TaskRecord:
    return TaskRecord(id=1, owner_id=owner_id, text="existing", completed=False, created_at=utcnow())


def test_failed_writes_leave_store_untouched() -> None:
    owner = UUID(int=1)
    store = TaskStore(_FlakyAdapter(_task(owner)))

    async def scenario():
        await store.load(owner)
        return await store.add_task("new"), await store.toggle_task(1)

    added, toggled = asyncio.run(scenario())

    assert isinstance(added.error, PersistenceError)
    assert isinstance(toggled.error, PersistenceError)
    assert [(t.text, t.completed) for t in store.tasks] == [("existing", False)]


def test_failed_comment_load_leaves_comments_empty() -> None:
    owner = UUID(int=1)
    store = TaskStore(_FlakyAdapter(_task(owner), fail_comments=True))

    asyncio.run(store.load(owner))

    assert [t.text for t in store.tasks] == ["existing"]
    assert store.comments == ()


class _GatedAdapter(PersistenceAdapter):
    """Listing blocks until ``release`` is set; records owners of writes."""

    def __init__(self, tasks_by_owner):
        self.tasks_by_owner = tasks_by_owner
        self.release = asyncio.Event()
        self.toggled = []

    async def list_tasks(self, *, owner_id: UUID):
        await self.release.wait()
        return list(self.tasks_by_owner.get(owner_id, []))

    async def list_comments_for_owner(self, *, owner_id: UUID):
        return []

    async def update_task(self, *, task_id, changes, owner_id=None):
        task = next(t for t in self.tasks_by_owner[owner_id] if t.id == task_id)
        return task.model_copy(update={"completed": changes.completed})

    async def toggle_task_completion(self, *, task_id, current, owner_id=None):
        self.toggled.append((task_id, current, owner_id))
        return await super().toggle_task_completion(task_id=task_id, current=current, owner_id=owner_id)


def test_load_empties_store_until_lists_resolve() -> None:
    ann, bob = UUID(int=1), UUID(int=2)
    adapter = _GatedAdapter({ann: [_task(ann)], bob: []})
    store = TaskStore(adapter)

    async def scenario():
        adapter.release.set()
        await store.load(ann)
        loaded = store.tasks

        adapter.release.clear()
        pending = asyncio.create_task(store.load(bob))
        await asyncio.sleep(0)
        during = (store.owner_id, store.tasks, await store.add_task("too early"))

        adapter.release.set()
        await pending
        return loaded, during

    loaded, (owner_during, tasks_during, early) = asyncio.run(scenario())

    assert [t.text for t in loaded] == ["existing"]
    assert owner_during is None and tasks_during == ()
    assert isinstance(early.error, UnauthenticatedError)
    assert store.owner_id == bob and store.tasks == ()


def test_clear_during_load_discards_its_result() -> None:
    ann = UUID(int=1)
    adapter = _GatedAdapter({ann: [_task(ann)]})
    store = TaskStore(adapter)

    async def scenario():
        pending = asyncio.create_task(store.load(ann))
        await asyncio.sleep(0)
        store.clear()
        adapter.release.set()
        await pending

    asyncio.run(scenario())

    assert store.owner_id is None
    assert store.tasks == ()


def test_toggle_goes_through_adapter_toggle() -> None:
    ann = UUID(int=1)
    adapter = _GatedAdapter({ann: [_task(ann)]})
    store = TaskStore(adapter)

    async def scenario():
        adapter.release.set()
        await store.load(ann)
        return await store.toggle_task(1)

    result = asyncio.run(scenario())

    assert result.value.completed is True
    assert adapter.toggled == [(1, False, ann)]
    assert store.get_task(1).completed is True
