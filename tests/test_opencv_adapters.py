import cv2
import fitz
import numpy as np
import pytest

from examscan.adapters.vision.opencv.imaging import (
    OpenCVDebugCropWriter,
    decode_image,
    encode_png,
    resize_if_large,
)
from examscan.adapters.vision.opencv.markers import OpenCVMarkerDetector
from examscan.adapters.vision.opencv.warp import OpenCVPerspectiveWarper, _order_points
from examscan.adapters.vision.pdf.rasterizer import PyMuPdfRasterizer
from examscan.domain.errors import RasterizationError
from examscan.domain.scanning.regions import PixelRect
from examscan.domain.scanning.results import Cropped


def _sheet(width=800, height=1100, size=30, offset=20, skip=None):
    page = np.full((height, width, 3), 255, dtype=np.uint8)
    origins = {
        "tl": (offset, offset),
        "tr": (width - offset - size, offset),
        "bl": (offset, height - offset - size),
        "br": (width - offset - size, height - offset - size),
    }
    for name, (x, y) in origins.items():
        if name != skip:
            page[y:y + size, x:x + size] = 0
    return page


class TestMarkerDetector:
    def test_four_corner_markers(self):
        detection = OpenCVMarkerDetector().detect(_sheet())

        assert detection.success
        (tlx, tly), (trx, _), (_, bly), (brx, bry) = detection.corners
        assert tlx == pytest.approx(35, abs=2) and tly == pytest.approx(35, abs=2)
        assert trx == pytest.approx(765, abs=2)
        assert bly == pytest.approx(1065, abs=2)
        assert (brx, bry) == (pytest.approx(765, abs=2), pytest.approx(1065, abs=2))

    def test_missing_marker(self):
        detection = OpenCVMarkerDetector().detect(_sheet(skip="br"))
        assert not detection.success
        assert "markers missing" in detection.reason

    def test_blank_page(self):
        detection = OpenCVMarkerDetector().detect(np.full((500, 400, 3), 255, dtype=np.uint8))
        assert not detection.success

    def test_empty_image(self):
        assert not OpenCVMarkerDetector().detect(np.zeros((0, 0, 3), dtype=np.uint8)).success


class TestPerspectiveWarper:
    def test_output_canvas_size(self):
        image = _sheet()
        src = ((35, 35), (765, 35), (35, 1065), (765, 1065))
        dst = ((0, 0), (619, 0), (0, 876), (619, 876))

        out = OpenCVPerspectiveWarper().warp(image, src, dst, (620, 877))

        assert out.shape == (877, 620, 3)

    def test_wrong_point_count(self):
        with pytest.raises(ValueError):
            OpenCVPerspectiveWarper().warp(_sheet(), ((0, 0),) * 3, ((0, 0),) * 4, (10, 10))

    def test_order_points(self):
        shuffled = np.array([[100, 100], [0, 0], [0, 100], [100, 0]], dtype=np.float32)
        ordered = _order_points(shuffled)
        assert ordered.tolist() == [[0, 0], [100, 0], [0, 100], [100, 100]]


class TestImaging:
    def test_png_round_trip(self):
        image = _sheet(width=40, height=50, size=5, offset=2)
        decoded = decode_image(encode_png(image))
        assert decoded.shape == (50, 40, 3)

    def test_decode_garbage(self):
        assert decode_image(b"not an image") is None
        assert decode_image(b"") is None

    def test_resize_if_large(self):
        small, resized = resize_if_large(np.zeros((100, 100, 3), dtype=np.uint8))
        assert not resized and small.shape == (100, 100, 3)

        big, resized = resize_if_large(np.zeros((4000, 2000, 3), dtype=np.uint8))
        assert resized
        assert max(big.shape[:2]) <= 1920

    def test_debug_writer(self, tmp_path):
        crop = Cropped(name="e1/a.pdf:total:00", image=np.zeros((5, 5, 3), dtype=np.uint8), rect=PixelRect(0, 0, 5, 5))
        OpenCVDebugCropWriter(str(tmp_path)).write("e1/a.pdf", [crop], grid=np.zeros((5, 5, 3), dtype=np.uint8))

        out_dir = tmp_path / "e1_a.pdf"
        assert (out_dir / "grid.png").exists()
        assert (out_dir / "e1_a.pdf_total_00.png").exists()


class TestPyMuPdfRasterizer:
    def test_image_upload(self):
        content = encode_png(_sheet(width=60, height=80, size=5, offset=2))
        image = PyMuPdfRasterizer().rasterize(content, "2021001.png")
        assert image.shape == (80, 60, 3)

    def test_pdf_first_page(self):
        doc = fitz.open()
        doc.new_page(width=200, height=300)
        doc.new_page(width=500, height=500)
        content = doc.tobytes()
        doc.close()

        image = PyMuPdfRasterizer(dpi=72).rasterize(content, "2021001.pdf")

        assert image.shape == (300, 200, 3)
        assert image.dtype == np.uint8
        assert int(image[150, 100, 0]) == 255

    def test_pdf_every_page_addressable(self):
        doc = fitz.open()
        doc.new_page(width=200, height=300)
        doc.new_page(width=500, height=500)
        content = doc.tobytes()
        doc.close()
        rasterizer = PyMuPdfRasterizer(dpi=72)

        assert rasterizer.page_count(content, "class_a.pdf") == 2
        assert rasterizer.rasterize(content, "class_a.pdf", page_index=1).shape == (500, 500, 3)
        with pytest.raises(RasterizationError):
            rasterizer.rasterize(content, "class_a.pdf", page_index=2)

    def test_image_upload_is_single_page(self):
        content = encode_png(_sheet(width=60, height=80, size=5, offset=2))
        rasterizer = PyMuPdfRasterizer()

        assert rasterizer.page_count(content, "2021001.png") == 1
        with pytest.raises(RasterizationError):
            rasterizer.rasterize(content, "2021001.png", page_index=1)

    def test_page_count_of_corrupt_pdf(self):
        with pytest.raises(RasterizationError):
            PyMuPdfRasterizer().page_count(b"%PDF-1.4 garbage", "broken.pdf")

    def test_pdf_dpi_scales(self):
        doc = fitz.open()
        doc.new_page(width=72, height=72)
        content = doc.tobytes()
        doc.close()

        assert PyMuPdfRasterizer(dpi=144).rasterize(content, "x.pdf").shape[:2] == (144, 144)

    @pytest.mark.parametrize("content, name", [
        (b"%PDF-1.4 garbage", "broken.pdf"),
        (b"hello", "notes.txt"),
        (b"\x89PNG broken", "scan.png"),
        (b"", "empty.pdf"),
    ])
    def test_corrupt_input(self, content, name):
        with pytest.raises(RasterizationError):
            PyMuPdfRasterizer().rasterize(content, name)

    def test_grayscale_decode_is_bgr(self):
        gray = np.full((10, 12), 128, dtype=np.uint8)
        ok, buf = cv2.imencode(".png", gray)
        assert ok
        assert PyMuPdfRasterizer().rasterize(buf.tobytes(), "g.png").shape == (10, 12, 3)
