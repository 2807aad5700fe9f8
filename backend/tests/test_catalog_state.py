"""
SnackCart Client — Catalog State Tests
=======================================

What:  Pure-function tests for grouping, filtering, patches, price parsing
       and image resolution. No I/O, no event loop.
"""

import json

import pytest

from snackcart.client import state as st
from snackcart.client.state import CatalogState, EditDraft, FetchStatus, Snack


class TestGrouping:

    def test_single_item_lands_in_its_bucket(self, make_snack):
        chips = make_snack()
        catalog = st.group_by_category([chips])

        assert catalog["Vegetarian"] == (chips,)
        assert catalog["Non Vegetarian"] == ()
        assert catalog["Juice"] == ()

    def test_bucket_membership_matches_category(self, make_snack):
        snacks = [
            make_snack("a", category="Vegetarian"),
            make_snack("b", category="Juice"),
            make_snack("c", category="Non Vegetarian"),
            make_snack("d", category="Juice"),
        ]
        catalog = st.group_by_category(snacks)

        for category, items in catalog.items():
            assert all(item.category == category for item in items)
        assert [s.id for s in catalog["Juice"]] == ["b", "d"]

    def test_unknown_category_dropped(self, make_snack):
        catalog = st.group_by_category([make_snack("x", category="Dessert")])

        assert list(catalog) == ["Vegetarian", "Non Vegetarian", "Juice"]
        assert all(items == () for items in catalog.values())

    def test_api_payload_parses_with_underscore_id(self):
        snack = Snack.model_validate(
            {"_id": "a", "name": "Chips", "price": 50, "category": "Vegetarian",
             "img": "/uploads/chips.jpg", "createdAt": "2026-10-17T10:00:00Z", "__v": 0}
        )
        assert snack.id == "a"
        assert snack.created_at is not None


class TestFilter:

    def test_case_insensitive_substring(self, make_snack):
        catalog = st.group_by_category([
            make_snack("a", name="Potato Chips"),
            make_snack("b", name="Samosa"),
            make_snack("c", name="Mango Juice", category="Juice"),
        ])

        filtered = st.filter_catalog(catalog, "  CHIP ")

        assert [s.id for s in filtered["Vegetarian"]] == ["a"]
        assert filtered["Juice"] == ()

    def test_empty_query_returns_catalog_unchanged(self, make_snack):
        catalog = st.group_by_category([make_snack()])
        assert st.filter_catalog(catalog, "") is catalog
        assert st.filter_catalog(catalog, "   ") is catalog

    def test_idempotent(self, make_snack):
        catalog = st.group_by_category([make_snack("a", name="Chips"), make_snack("b", name="Samosa")])

        once = st.filter_catalog(catalog, "sa")
        assert st.filter_catalog(once, "sa") == once


class TestPatches:

    def test_replace_price_only_touches_target(self, make_snack):
        catalog = st.group_by_category([make_snack("a"), make_snack("b", price=20)])

        patched = st.replace_price(catalog, "Vegetarian", "a", 75)

        assert [s.price for s in patched["Vegetarian"]] == [75, 20]
        assert [s.price for s in catalog["Vegetarian"]] == [50, 20]

    def test_prepend_uses_snack_category(self, make_snack):
        catalog = st.group_by_category([make_snack("j1", category="Juice")])
        soda = make_snack("z", name="Soda", price=30, category="Juice", img="/uploads/soda.jpg")

        patched = st.prepend_snack(catalog, soda)

        assert [s.id for s in patched["Juice"]] == ["z", "j1"]

    def test_remove(self, make_snack):
        catalog = st.group_by_category([make_snack("a"), make_snack("b")])
        assert [s.id for s in st.remove_snack(catalog, "Vegetarian", "a")["Vegetarian"]] == ["b"]

    def test_toggle_selected(self):
        selected = st.toggle_selected({}, "a")
        assert selected == {"a": True}
        assert st.toggle_selected(selected, "a") == {"a": False}

    def test_snack_removed_closes_its_edit(self, make_snack):
        chips = make_snack()
        state = CatalogState(catalog=st.group_by_category([chips]), selected={"a": True})
        state = st.begin_edit(state, "Vegetarian", chips, token=1)

        state = st.snack_removed(state, "Vegetarian", "a")

        assert state.draft is None
        assert state.selected == {}
        assert state.catalog["Vegetarian"] == ()


class TestPrices:

    @pytest.mark.parametrize("text,expected", [("75", 75.0), (" 12.5 ", 12.5), ("0", 0.0)])
    def test_parse_price_valid(self, text, expected):
        assert st.parse_price(text) == expected

    @pytest.mark.parametrize("text", ["", "  ", "abc", "-5", "nan", "inf"])
    def test_parse_price_invalid(self, text):
        with pytest.raises(ValueError):
            st.parse_price(text)

    def test_format_price(self):
        assert st.format_price(50.0) == "50"
        assert st.format_price(12.5) == "12.5"

    def test_begin_edit_copies_price_as_text(self, make_snack):
        state = st.begin_edit(CatalogState(), "Vegetarian", make_snack(price=50), token=7)
        assert state.draft == EditDraft(category="Vegetarian", snack_id="a", price_text="50", token=7)


class TestImageResolution:

    def test_absolute_urls_pass_through(self):
        assert st.resolve_image_url("https://cdn.example.com/a.jpg", "http://api") == "https://cdn.example.com/a.jpg"
        assert st.resolve_image_url("data:image/png;base64,xx", "http://api") == "data:image/png;base64,xx"

    def test_relative_paths_join_base(self):
        assert st.resolve_image_url("/uploads/chips.jpg", "http://localhost:8000/") == \
            "http://localhost:8000/uploads/chips.jpg"
        assert st.resolve_image_url("uploads/chips.jpg", "http://localhost:8000") == \
            "http://localhost:8000/uploads/chips.jpg"


class TestTransitions:

    def test_fetch_lifecycle(self, make_snack):
        state = st.start_loading(CatalogState())
        assert state.fetch_status is FetchStatus.LOADING

        state = st.loaded(state, [make_snack()])
        assert state.fetch_status is FetchStatus.POPULATED
        assert len(state.catalog["Vegetarian"]) == 1

    def test_load_failure_keeps_catalog(self, make_snack):
        state = st.loaded(CatalogState(), [make_snack()])
        notice = st.Notice(st.NoticeLevel.ERROR, "boom")

        failed = st.load_failed(st.start_loading(state), notice)

        assert failed.fetch_status is FetchStatus.ERRORED
        assert failed.catalog == state.catalog
        assert failed.notice == notice

    def test_serialize_catalog(self, make_snack):
        payload = json.loads(st.serialize_catalog(st.group_by_category([make_snack()])))
        assert payload["Vegetarian"][0]["id"] == "a"
        assert payload["Juice"] == []
