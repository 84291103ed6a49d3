import pandas as pd
import pytest

from report_core.sorting import SortState, sort_frame, toggle_sort


class TestToggleSort:
    def test_new_field_starts_descending(self):
        assert toggle_sort(SortState(), "discount") == SortState("discount", "desc")

    def test_same_field_flips(self):
        state = toggle_sort(SortState("discount", "desc"), "discount")
        assert state.direction == "asc"
        assert toggle_sort(state, "discount").direction == "desc"

    def test_switching_field_resets_direction(self):
        assert toggle_sort(SortState("discount", "asc"), "net_amount") == SortState("net_amount", "desc")

    def test_disallowed_field(self):
        with pytest.raises(ValueError):
            toggle_sort(SortState(), "customer_name", ("discount",))


class TestSortFrame:
    def test_no_field_keeps_order(self):
        frame = pd.DataFrame({"v": [2, 1, 3]})
        assert sort_frame(frame, SortState()).equals(frame)

    def test_descending(self):
        frame = pd.DataFrame({"v": [2, 1, 3]})
        assert sort_frame(frame, SortState("v", "desc"))["v"].tolist() == [3, 2, 1]

    def test_stable_for_ties(self):
        frame = pd.DataFrame({"id": ["a", "b", "c", "d"], "v": [1, 2, 1, 2]})
        assert sort_frame(frame, SortState("v", "asc"))["id"].tolist() == ["a", "c", "b", "d"]
        assert sort_frame(frame, SortState("v", "desc"))["id"].tolist() == ["b", "d", "a", "c"]

    def test_unknown_column(self):
        with pytest.raises(ValueError):
            sort_frame(pd.DataFrame({"v": [1]}), SortState("w"))
