"""Tests for selection, pagination and the workspace store."""
import asyncio

import pytest

from conftest import make_entries
from cloudbox.errors import TransportError, ValidationError
from cloudbox.models import ClientConfig, Folder
from cloudbox.workspace.pagination import PaginationWindow
from cloudbox.workspace.selection import SelectionSet
from cloudbox.workspace.store import WorkspaceStore


class TestSelectionSet:
    def test_toggle_twice_is_identity(self):
        selection = SelectionSet()
        selection.toggle("a")
        before = selection.ids()

        assert selection.toggle("b") is True
        assert selection.toggle("b") is False
        assert selection.ids() == before

        assert selection.toggle("a") is False
        assert selection.toggle("a") is True
        assert selection.ids() == before

    def test_insertion_order_iteration(self):
        selection = SelectionSet()
        for file_id in ["c", "a", "b"]:
            selection.toggle(file_id)
        assert list(selection) == ["c", "a", "b"]
        assert len(selection) == 3
        assert "a" in selection

    def test_clear(self):
        selection = SelectionSet()
        selection.toggle("x")
        selection.clear()
        assert not selection
        assert selection.ids() == []


class TestPaginationWindow:
    def test_grow_and_reset(self):
        window = PaginationWindow(20, 20)
        assert window.visible_count == 20
        for k in range(1, 4):
            assert window.grow() == 20 + 20 * k
        window.reset()
        assert window.visible_count == 20

    def test_slice_and_has_more(self):
        window = PaginationWindow(2, 3)
        listing = list(range(6))
        assert window.slice(listing) == [0, 1]
        assert window.has_more(len(listing))
        window.grow()
        assert window.slice(listing) == [0, 1, 2, 3, 4]
        window.grow()
        assert window.slice(listing) == listing
        assert not window.has_more(len(listing))

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            PaginationWindow(-1, 20)


class TestWorkspaceStore:
    @pytest.mark.asyncio
    async def test_reload_atomicity(self, backend):
        backend.files["42"] = make_entries(25, size=10)
        backend.files[None] = make_entries(3, size=7, prefix="h")
        store = WorkspaceStore(backend)

        await store.load_files("42")
        store.toggle("f1")
        store.toggle("f2")
        store.load_more()
        assert store.visible_count == 40

        entries = await store.load_files(None)

        assert len(entries) == 3
        assert store.folder_id is None
        assert store.selection == []
        assert store.visible_count == 20
        assert store.total_size_bytes == 21
        assert [e.id for e in store.visible()] == ["h1", "h2", "h3"]

    @pytest.mark.asyncio
    async def test_photos_scenario(self, backend):
        backend.folders = [Folder("42", "Photos")]
        backend.files["42"] = make_entries(25)
        store = WorkspaceStore(backend)

        await store.load_folders()
        await store.load_files("42")

        view = store.view()
        assert len(view.visible) == 20
        assert view.has_more is True

        store.load_more()
        view = store.view()
        assert len(view.visible) == 25
        assert view.has_more is False
        assert [e.id for e in view.visible] == [e.id for e in view.listing]

    @pytest.mark.asyncio
    async def test_pagination_is_client_side(self, backend):
        backend.files[None] = make_entries(70)
        store = WorkspaceStore(backend)
        await store.load_files()
        calls = len(backend.calls)

        for k in range(1, 4):
            store.load_more()
            assert store.visible_count == 20 + 20 * k
            assert len(store.visible()) == min(20 + 20 * k, 70)

        assert len(backend.calls) == calls

    @pytest.mark.asyncio
    async def test_failed_load_leaves_state_untouched(self, backend):
        backend.files["1"] = make_entries(5, size=10)
        store = WorkspaceStore(backend)
        await store.load_files("1")
        store.toggle("f3")

        backend.fail_list = True
        with pytest.raises(TransportError):
            await store.load_files("2")

        assert store.folder_id == "1"
        assert store.selection == ["f3"]
        assert store.total_size_bytes == 50

    @pytest.mark.asyncio
    async def test_stale_listing_is_dropped(self, backend):
        backend.files["slow"] = make_entries(2, prefix="s")
        backend.files["fast"] = make_entries(4, prefix="q")
        original = backend.list_files

        async def delayed(folder_id=None):
            if folder_id == "slow":
                await asyncio.sleep(0.02)
            return await original(folder_id)

        backend.list_files = delayed
        store = WorkspaceStore(backend)

        await asyncio.gather(store.load_files("slow"), store.load_files("fast"))

        assert store.folder_id == "fast"
        assert [e.id for e in store.listing] == ["q1", "q2", "q3", "q4"]

    @pytest.mark.asyncio
    async def test_toggle_requires_listed_id(self, backend):
        backend.files[None] = make_entries(2)
        store = WorkspaceStore(backend)
        await store.load_files()

        with pytest.raises(ValidationError):
            store.toggle("missing")
        assert store.toggle("f1") is True

    @pytest.mark.asyncio
    async def test_create_folder_blank_is_noop(self, backend):
        store = WorkspaceStore(backend)
        await store.create_folder("")
        await store.create_folder("   ")
        assert backend.calls == []

    @pytest.mark.asyncio
    async def test_create_folder_reloads_folders(self, backend):
        store = WorkspaceStore(backend)
        await store.create_folder(" Docs ")
        assert ("create_folder", "Docs") in backend.calls
        assert [f.name for f in store.folders] == ["Docs"]
        assert backend.calls[-1] == ("list_folders",)

    @pytest.mark.asyncio
    async def test_view_storage_meter(self, backend):
        backend.files[None] = make_entries(2, size=512 * 1024 * 1024)
        store = WorkspaceStore(backend, ClientConfig(quota_bytes=4 * 1024 * 1024 * 1024))
        await store.load_files()

        view = store.view()
        assert view.total_size_label == "1.00 GB"
        assert view.usage_fraction == 0.25
