from flash_select.config import SelectConfig
from flash_select.schemas import Option
from flash_select.selection import Selection, SelectionMode, SelectionReconciler

OPTIONS = [
    Option(label="Acme", value="item-1", item={"id": "item-1", "name": "Acme"}),
    Option(label="Globex", value="item-2", item={"id": "item-2", "name": "Globex"}),
    Option(label="Initech", value="item-3", item={"id": "item-3", "name": "Initech"}),
]


class TestSelection:
    def test_from_value_single(self):
        selection = Selection.from_value("item-1")

        assert selection.mode is SelectionMode.SINGLE
        assert selection.committed == ("item-1",)
        assert selection.value == "item-1"

    def test_from_value_single_keeps_one_id(self):
        assert Selection.from_value(["a", "b"]).committed == ("a",)

    def test_from_value_empty(self):
        assert Selection.from_value("").committed == ()
        assert Selection.from_value(None, multiple=True).value == []

    def test_from_value_multi_normalizes(self):
        selection = Selection.from_value(["a", 2, "", "a", None], multiple=True)

        assert selection.committed == ("a", "2")
        assert selection.value == ["a", "2"]

    def test_open_seeds_provisional_in_multi_mode(self):
        selection = Selection.from_value(["a"], multiple=True).open()

        assert selection.provisional == ("a",)
        assert selection.active == ("a",)

    def test_open_is_noop_in_single_mode(self):
        selection = Selection.from_value("a")

        assert selection.open() is selection

    def test_select_commits(self):
        assert Selection().select("item-2").committed == ("item-2",)

    def test_select_same_id_deselects(self):
        selection = Selection.from_value("item-1").select("item-1")

        assert selection.committed == ()
        assert selection.value == ""

    def test_select_same_id_without_toggle(self):
        selection = Selection.from_value("item-1").select("item-1", toggle_deselect=False)

        assert selection.committed == ("item-1",)

    def test_toggle_only_touches_provisional(self):
        selection = Selection.from_value(["a"], multiple=True).open()

        selection = selection.toggle("b").toggle("a")

        assert selection.provisional == ("b",)
        assert selection.committed == ("a",)

    def test_toggle_outside_session_is_noop(self):
        selection = Selection.from_value(["a"], multiple=True)

        assert selection.toggle("b") is selection

    def test_apply_commits_in_toggle_order(self):
        selection = Selection(mode=SelectionMode.MULTI).open()

        selection = selection.toggle("item-1").toggle("item-2").apply()

        assert selection.committed == ("item-1", "item-2")
        assert selection.provisional is None

    def test_discard_reverts(self):
        selection = Selection.from_value(["a"], multiple=True).open().toggle("b")

        selection = selection.discard()

        assert selection.committed == ("a",)
        assert selection.provisional is None

    def test_cleared(self):
        selection = Selection.from_value(["a"], multiple=True).open().cleared()

        assert selection.committed == ()
        assert selection.provisional is None

    def test_with_value_keeps_session_open(self):
        selection = Selection.from_value(["a"], multiple=True).open()

        selection = selection.with_value(["c"])

        assert selection.committed == ("c",)
        assert selection.provisional == ("a",)

    def test_transitions_do_not_mutate(self):
        original = Selection.from_value(["a"], multiple=True)
        original.open().toggle("b").apply()

        assert original.committed == ("a",)


class TestLabelResolution:
    def test_placeholder_without_value(self):
        reconciler = SelectionReconciler(SelectConfig(placeholder="Pick a client"))

        assert reconciler.display_value(OPTIONS) == "Pick a client"

    def test_cached_label_wins(self):
        reconciler = SelectionReconciler(SelectConfig(), value="item-1")
        reconciler.remember("item-1", "Acme Corp (picked)")

        assert reconciler.display_value(OPTIONS) == "Acme Corp (picked)"

    def test_loaded_option_label(self):
        reconciler = SelectionReconciler(SelectConfig(), value="item-2")

        assert reconciler.display_value(OPTIONS) == "Globex"

    def test_fallback_option_when_not_loaded(self):
        config = SelectConfig(fallback_option=Option(label="Hooli", value="item-5"))
        reconciler = SelectionReconciler(config, value="item-5")

        assert reconciler.display_value(OPTIONS) == "Hooli"

    def test_fallback_option_for_other_id_is_skipped(self):
        config = SelectConfig(fallback_option=Option(label="Hooli", value="item-5"))
        reconciler = SelectionReconciler(config, value="item-9")

        assert reconciler.display_value(OPTIONS) == "item-9"

    def test_loaded_option_beats_fallback_option(self):
        config = SelectConfig(fallback_option=Option(label="Stale name", value="item-1"))
        reconciler = SelectionReconciler(config, value="item-1")

        assert reconciler.display_value(OPTIONS) == "Acme"

    def test_fallback_value_passthrough(self):
        reconciler = SelectionReconciler(
            SelectConfig(fallback_value="Umbrella Corp"), value="item-4"
        )

        assert reconciler.display_value([]) == "Umbrella Corp"

    def test_raw_value_passthrough(self):
        reconciler = SelectionReconciler(SelectConfig(), value="item-4")

        assert reconciler.display_value([]) == "item-4"

    def test_custom_select_formats_loaded_item(self):
        reconciler = SelectionReconciler(
            SelectConfig(),
            value="item-3",
            custom_select=lambda item, fallback: item and item["name"].upper(),
        )

        assert reconciler.display_value(OPTIONS) == "INITECH"

    def test_custom_select_receives_fallback_value(self):
        seen = []

        def custom_select(item, fallback):
            seen.append((item, fallback))
            return None

        reconciler = SelectionReconciler(
            SelectConfig(fallback_value="Legacy"), value="item-9", custom_select=custom_select
        )

        assert reconciler.display_value(OPTIONS) == "Legacy"
        assert seen == [(None, "Legacy")]

    def test_labels_pruned_when_value_changes(self):
        reconciler = SelectionReconciler(SelectConfig(), value="item-1")
        reconciler.remember("item-1", "Cached")

        reconciler.update(reconciler.selection.with_value("item-2"))
        reconciler.update(reconciler.selection.with_value("item-1"))

        assert reconciler.display_value(OPTIONS) == "Acme"


class TestMultiDisplay:
    def test_count_summary(self):
        reconciler = SelectionReconciler(
            SelectConfig(multiple=True), value=["item-1", "item-2"]
        )

        assert reconciler.display_value(OPTIONS) == "2 items selected"

    def test_count_summary_singular(self):
        reconciler = SelectionReconciler(SelectConfig(multiple=True), value=["item-1"])

        assert reconciler.display_value(OPTIONS) == "1 item selected"

    def test_labels_joined(self):
        config = SelectConfig(multiple=True, multi_display="labels")
        reconciler = SelectionReconciler(config, value=["item-1", "item-2"])

        assert reconciler.display_value(OPTIONS) == "Acme, Globex"

    def test_labels_truncated(self):
        config = SelectConfig(
            multiple=True, multi_display="labels", max_selected_display=1
        )
        reconciler = SelectionReconciler(config, value=["item-1", "item-2", "item-9"])

        assert reconciler.display_value(OPTIONS) == "Acme +2"

    def test_multi_ignores_fallback_value(self):
        config = SelectConfig(
            multiple=True, multi_display="labels", fallback_value="Legacy"
        )
        reconciler = SelectionReconciler(config, value=["item-9"])

        assert reconciler.display_value([]) == "item-9"

    def test_items_for_uses_loaded_and_cached_items(self):
        reconciler = SelectionReconciler(SelectConfig(multiple=True), value=["item-1"])
        reconciler.update(reconciler.selection.open().toggle("item-7"))
        reconciler.remember("item-7", "Seven", {"id": "item-7"})

        items = reconciler.items_for(["item-1", "item-7", "item-8"], OPTIONS)

        assert items == [{"id": "item-1", "name": "Acme"}, {"id": "item-7"}]
