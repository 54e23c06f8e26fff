"""Tests for pdf_toolbox.rasterize."""

import io

import numpy as np
import pytest
from PIL import Image

from pdf_toolbox.errors import LoadError, RenderError, UserInputError
from pdf_toolbox.rasterize import get_page_count, open_document, render_page, render_preview, scaled_size

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class TestOpenDocument:
    def test_page_count(self, multi_page_pdf):
        assert get_page_count(multi_page_pdf) == 3

    def test_empty_bytes(self):
        with pytest.raises(LoadError):
            open_document(b"")

    def test_garbage_bytes(self):
        with pytest.raises(LoadError):
            open_document(b"this is not a pdf at all")

    def test_context_manager_closes(self, single_page_pdf):
        with open_document(single_page_pdf) as document:
            assert document.page_count == 1
        assert document._doc is None


class TestScaledSize:
    def test_rounds_half_up(self):
        assert scaled_size(595, 842, 0.5) == (298, 421)

    def test_minimum_one_pixel(self):
        assert scaled_size(1, 1, 0.1) == (1, 1)


class TestRenderPage:
    def test_dimensions_follow_scale(self, single_page_pdf):
        with open_document(single_page_pdf) as document:
            image = render_page(document, 1, 0.5)
        assert image.shape == (421, 298, 3)
        assert image.dtype == np.uint8

    def test_rotation_swaps_dimensions(self, single_page_pdf):
        with open_document(single_page_pdf) as document:
            upright = render_page(document, 1, 0.5)
            turned = render_page(document, 1, 0.5, rotation=90)
        assert turned.shape == (upright.shape[1], upright.shape[0], 3)

    def test_rotation_180_keeps_dimensions(self, single_page_pdf):
        with open_document(single_page_pdf) as document:
            image = render_page(document, 1, 0.5, rotation=180)
        assert image.shape == (421, 298, 3)

    def test_rotation_90_is_clockwise(self, single_page_pdf):
        with open_document(single_page_pdf) as document:
            upright = render_page(document, 1, 0.5)
            turned = render_page(document, 1, 0.5, rotation=90)
        np.testing.assert_array_equal(turned, np.rot90(upright, k=-1))

    def test_page_out_of_range(self, single_page_pdf):
        with open_document(single_page_pdf) as document:
            with pytest.raises(RenderError) as exc_info:
                render_page(document, 2, 1.0)
        assert exc_info.value.page_num == 2

    def test_invalid_rotation(self, single_page_pdf):
        with open_document(single_page_pdf) as document:
            with pytest.raises(UserInputError):
                render_page(document, 1, 1.0, rotation=45)


class TestRenderPreview:
    def test_returns_png(self, single_page_pdf):
        assert render_preview(single_page_pdf, 1)[:8] == PNG_MAGIC

    def test_rotated_preview(self, single_page_pdf):
        img = Image.open(io.BytesIO(render_preview(single_page_pdf, 1, rotation=270)))
        assert img.size == (421, 298)
