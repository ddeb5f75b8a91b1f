import pytest

from i18n_extract.core.patcher import SpanCollector, apply_patches, shift_spans, to_change_details
from i18n_extract.core.types import PatchSpan


def test_apply_patches_empty_is_identity():
    text = "const a = 1;\n"
    assert apply_patches(text, []) == text


def test_apply_patches_order_independent():
    text = "abc def ghi"
    spans = [PatchSpan(0, 3, "X"), PatchSpan(4, 7, "YY"), PatchSpan(8, 11, "")]
    expected = "X YY "
    assert apply_patches(text, spans) == expected
    assert apply_patches(text, list(reversed(spans))) == expected


def test_apply_patches_insertion_and_offset():
    assert apply_patches("abc", [PatchSpan(1, 1, "-")]) == "a-bc"
    # spans computed in a wrapper that starts 10 characters earlier
    assert apply_patches("abc", [PatchSpan(10, 11, "Z")], offset=10) == "Zbc"


def test_apply_patches_out_of_range():
    with pytest.raises(ValueError):
        apply_patches("abc", [PatchSpan(2, 9, "x")])


def test_span_collector_rejects_overlaps():
    collector = SpanCollector()
    assert collector.add(PatchSpan(0, 5, "a"))
    assert not collector.add(PatchSpan(3, 7, "b"))
    # touching spans and an insertion at the boundary are fine
    assert collector.add(PatchSpan(5, 8, "c"))
    assert collector.add(PatchSpan(5, 5, "d"))
    assert len(collector) == 3
    assert not collector.add(PatchSpan(2, 2, "inside"))


def test_zero_width_spans_at_same_position_clash():
    assert PatchSpan(4, 4, "a").overlaps(PatchSpan(4, 4, "b"))
    assert not PatchSpan(4, 4, "a").overlaps(PatchSpan(4, 6, "b"))


def test_shift_spans_and_change_details():
    spans = [PatchSpan(1, 3, "t('k')", line=1, column=1, end_line=1, end_column=3)]
    shifted = shift_spans(spans, 10, line_delta=2)
    assert (shifted[0].start, shifted[0].end, shifted[0].line) == (11, 13, 3)

    text = "x" * 11 + "ab" + "y"
    changes = to_change_details(text, shifted, "a.vue")
    assert len(changes) == 1
    assert changes[0].original == "ab"
    assert changes[0].replacement == "t('k')"
    assert changes[0].file_path == "a.vue"
