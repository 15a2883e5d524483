"""
Unit tests for the table state holder: selection, debounced URL commits.
"""

import asyncio

import pytest

from hkidash.core.config import settings
from hkidash.table import DebouncedCommit, SelectionTracker, TableController
from hkidash.table.state import SortField

DELAY = 0.05


class TestSelectionTracker:
    def test_toggle(self):
        selection = SelectionTracker()
        assert selection.toggle(3) is True
        assert 3 in selection
        assert selection.toggle(3) is False
        assert len(selection) == 0

    def test_page_selection(self):
        selection = SelectionTracker()
        selection.select_page([1, 2, 3])
        assert selection.all_selected([1, 2, 3])
        selection.deselect(2)
        assert not selection.all_selected([1, 2, 3])
        assert selection.ids == (1, 3)
        selection.deselect_page([1, 3])
        assert selection.ids == ()

    def test_all_selected_is_false_for_empty_page(self):
        assert not SelectionTracker().all_selected([])


class TestDebouncedCommit:
    @pytest.mark.asyncio
    async def test_fires_once_after_quiet_period(self):
        fired = []
        debouncer = DebouncedCommit(DELAY, lambda: fired.append(1))

        debouncer.schedule()
        await asyncio.sleep(DELAY / 5)
        debouncer.schedule()
        await asyncio.sleep(DELAY / 5)
        debouncer.schedule()
        assert fired == []

        await asyncio.sleep(DELAY * 3)
        assert fired == [1]
        assert not debouncer.pending

    @pytest.mark.asyncio
    async def test_cancel(self):
        fired = []
        debouncer = DebouncedCommit(DELAY, lambda: fired.append(1))
        debouncer.schedule()
        assert debouncer.cancel() is True
        await asyncio.sleep(DELAY * 3)
        assert fired == []
        assert debouncer.cancel() is False

    @pytest.mark.asyncio
    async def test_flush_commits_immediately(self):
        fired = []
        debouncer = DebouncedCommit(DELAY, lambda: fired.append(1))
        debouncer.schedule()
        debouncer.flush()
        assert fired == [1]
        await asyncio.sleep(DELAY * 3)
        assert fired == [1]


class TestTableController:
    @pytest.fixture
    def navigated(self):
        return []

    @pytest.fixture
    def controller(self, navigated):
        return TableController(navigated.append, debounce_seconds=DELAY)

    @pytest.mark.asyncio
    async def test_search_commits_only_settled_text(self, controller, navigated):
        for text in ("b", "ba", "bat", "batik"):
            controller.set_search(text)
        assert controller.state.search == "batik"
        assert navigated == []
        assert controller.commit_pending

        await asyncio.sleep(DELAY * 3)
        assert navigated == ["search=batik"]
        assert controller.query_string == "search=batik"

    @pytest.mark.asyncio
    async def test_immediate_change_supersedes_pending_search(self, controller, navigated):
        controller.set_search("kopi")
        controller.set_year(2023)
        assert navigated == ["search=kopi&year=2023"]
        assert not controller.commit_pending

        await asyncio.sleep(DELAY * 3)
        assert navigated == ["search=kopi&year=2023"]

    def test_filter_change_resets_page_and_selection(self, controller, navigated):
        controller.set_page(4)
        controller.selection.select_page([10, 11])

        controller.set_status(2)

        assert controller.state.page == 1
        assert len(controller.selection) == 0
        assert navigated == ["page=4", "statusId=2"]

    def test_page_change_clears_selection(self, controller):
        controller.selection.select(5)
        controller.set_page(2)
        assert len(controller.selection) == 0

    def test_no_op_change_keeps_selection(self, controller, navigated):
        controller.selection.select(5)
        controller.set_type(None)
        assert 5 in controller.selection
        assert navigated == []

    def test_sort_toggle(self, controller, navigated):
        controller.toggle_sort(SortField.TITLE)
        assert navigated == ["sortBy=title&sortOrder=asc"]

    def test_load_adopts_url_without_navigating(self, controller, navigated):
        controller.selection.select(1)
        controller.load("year=2022&page=2")
        assert controller.state.year == 2022
        assert controller.state.page == 2
        assert len(controller.selection) == 0
        assert navigated == []

    def test_initial_query(self, navigated):
        controller = TableController(navigated.append, initial_query="agencyId=3")
        assert controller.state.agency_id == 3
        assert controller.query_string == "agencyId=3"

    def test_clear_filters(self, controller, navigated):
        controller.set_year(2020)
        controller.clear_filters()
        assert navigated[-1] == ""

    def test_oversized_page_size_link_reproduces_view(self, navigated):
        controller = TableController(navigated.append, max_page_size=100)
        controller.set_page_size(500)

        assert controller.state.page_size == 100
        assert navigated == ["pageSize=100"]
        reopened = TableController([].append, initial_query=navigated[-1], max_page_size=100)
        assert reopened.state == controller.state

    def test_page_size_bound_from_settings(self, navigated, monkeypatch):
        monkeypatch.setattr(settings, "max_page_size", 40)
        controller = TableController(navigated.append)
        controller.set_page_size(60)
        assert controller.state.page_size == 40

    def test_debounce_delay_from_settings(self, monkeypatch):
        monkeypatch.setattr(settings, "search_debounce_seconds", 1.5)
        controller = TableController([].append)
        assert controller._debouncer.delay == 1.5

    @pytest.mark.asyncio
    async def test_blank_search_commits_bare_url(self, controller, navigated):
        controller.set_year(2023)
        controller.set_search("   ")
        controller.flush()
        assert navigated == ["year=2023"]
        assert controller.state.search == ""

    @pytest.mark.asyncio
    async def test_flush_on_enter(self, controller, navigated):
        controller.set_search("merek")
        controller.flush()
        assert navigated == ["search=merek"]
