"""Tests for pdf_toolbox.organize: merge, split, rotate and organize."""

import pytest

from conftest import page_rotations, page_widths
from pdf_toolbox.errors import LoadError, UserInputError
from pdf_toolbox.organize import (
    PageRef,
    merge_pdfs,
    organize_pdf,
    parse_page_list,
    parse_page_ranges,
    plan_layout,
    rotate_pdf,
    split_pdf,
)


class TestParsing:
    def test_ranges(self):
        assert parse_page_ranges("1, 3-5 ,7", 10) == [(1, 1), (3, 5), (7, 7)]

    def test_list_keeps_order(self):
        assert parse_page_list("4-5,1", 5) == [4, 5, 1]

    @pytest.mark.parametrize("value", ["0", "2-1", "1-11", "a", "1-b", "", " , "])
    def test_invalid(self, value):
        with pytest.raises(UserInputError):
            parse_page_ranges(value, 10)


class TestMerge:
    def test_pages_in_input_order(self, multi_page_pdf, pdf_factory):
        second = pdf_factory((500, 300), (600, 300))
        merged = merge_pdfs([("a.pdf", multi_page_pdf), ("b.pdf", second)])
        assert page_widths(merged) == [200, 300, 400, 500, 600]

    def test_needs_two_files(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            merge_pdfs([("a.pdf", multi_page_pdf)])

    def test_bad_input(self, multi_page_pdf):
        with pytest.raises(LoadError, match="broken.pdf"):
            merge_pdfs([("a.pdf", multi_page_pdf), ("broken.pdf", b"not a pdf")])


class TestSplit:
    def test_all(self, multi_page_pdf):
        parts = split_pdf(multi_page_pdf, "report.pdf")
        assert [name for name, _ in parts] == [
            "report_page_1.pdf", "report_page_2.pdf", "report_page_3.pdf"
        ]
        assert [page_widths(data) for _, data in parts] == [[200], [300], [400]]

    def test_selected_pages_sorted_unique(self, multi_page_pdf):
        parts = split_pdf(multi_page_pdf, "report.pdf", mode="pages", pages=[3, 1, 3])
        assert [name for name, _ in parts] == ["report_page_1.pdf", "report_page_3.pdf"]

    def test_ranges(self, multi_page_pdf):
        parts = split_pdf(multi_page_pdf, "report.pdf", mode="ranges", ranges="1-2,3")
        assert [name for name, _ in parts] == ["report_pages_1-2.pdf", "report_pages_3-3.pdf"]
        assert page_widths(parts[0][1]) == [200, 300]

    def test_range_tuples(self, multi_page_pdf):
        parts = split_pdf(multi_page_pdf, "x.pdf", mode="ranges", ranges=[(2, 3)])
        assert page_widths(parts[0][1]) == [300, 400]

    def test_range_out_of_bounds(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            split_pdf(multi_page_pdf, mode="ranges", ranges=[(2, 4)])

    def test_no_pages_selected(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            split_pdf(multi_page_pdf, mode="pages", pages=[])

    def test_unknown_mode(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            split_pdf(multi_page_pdf, mode="halves")


class TestRotate:
    def test_all_pages(self, multi_page_pdf):
        assert page_rotations(rotate_pdf(multi_page_pdf, 90)) == [90, 90, 90]

    def test_adds_to_existing_rotation(self, multi_page_pdf):
        once = rotate_pdf(multi_page_pdf, 90)
        assert page_rotations(rotate_pdf(once, 180)) == [270, 270, 270]

    def test_counter_clockwise(self, multi_page_pdf):
        assert page_rotations(rotate_pdf(multi_page_pdf, -90)) == [270, 270, 270]

    def test_selected_pages(self, multi_page_pdf):
        rotated = rotate_pdf(multi_page_pdf, 90, pages="2-3")
        assert page_rotations(rotated) == [0, 90, 90]
        assert page_widths(rotated) == [200, 300, 400]

    @pytest.mark.parametrize("angle", [0, 360, 45])
    def test_invalid_angle(self, multi_page_pdf, angle):
        with pytest.raises(UserInputError):
            rotate_pdf(multi_page_pdf, angle)


class TestOrganize:
    def test_reorder_delete_rotate_append(self, multi_page_pdf, pdf_factory):
        extra = pdf_factory((500, 300))
        layout = plan_layout(
            3, order=[3, 1, 2], deleted=[1], rotations={2: 90}, extra_page_counts=[1]
        )
        assert layout == [PageRef(3), PageRef(2, rotation=90), PageRef(1, document=1)]

        output = organize_pdf(multi_page_pdf, layout, [extra])

        assert page_widths(output) == [400, 300, 500]
        assert page_rotations(output) == [0, 90, 0]

    def test_default_layout_is_identity(self, multi_page_pdf):
        output = organize_pdf(multi_page_pdf, plan_layout(3))
        assert page_widths(output) == [200, 300, 400]

    def test_empty_layout(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            organize_pdf(multi_page_pdf, [])

    def test_page_used_twice(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            organize_pdf(multi_page_pdf, [PageRef(1), PageRef(1)])

    def test_unknown_document(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            organize_pdf(multi_page_pdf, [PageRef(1, document=1)])

    def test_page_out_of_range(self, multi_page_pdf):
        with pytest.raises(UserInputError):
            organize_pdf(multi_page_pdf, [PageRef(4)])

    def test_invalid_main_document(self):
        with pytest.raises(LoadError):
            organize_pdf(b"", [PageRef(1)])
