import numpy as np
import pytest

from halo_blur.errors import ImageValidationError
from halo_blur.image import (Image, PixelBuffer, load_image, make_constant, make_pattern, save_image,
                             validate_image)


def test_pixel_buffer_indexing():
    # 3 colonnes, 2 canaux fictifs pour vérifier le pas de ligne
    buf = PixelBuffer(np.arange(24, dtype=np.uint8), 3, 2)
    assert buf.row_stride == 6
    assert buf.rows == 4
    assert buf.at(1, 2, 1) == 11
    assert list(buf.row(3)) == [18, 19, 20, 21, 22, 23]


def test_slice_rows_is_a_view():
    data = np.arange(12, dtype=np.uint8)
    buf = PixelBuffer(data, 4, 1)
    part = buf.slice_rows(1, 2)
    assert part.rows == 2
    assert part.at(0, 0, 0) == 4
    part.data[0] = 200
    assert data[4] == 200


def test_pixel_buffer_rejects_partial_rows():
    with pytest.raises(ValueError):
        PixelBuffer(np.zeros(7, dtype=np.uint8), 2, 1)


def test_pattern_image():
    img = make_pattern(4, 2, 3)
    assert img.data.size == 24
    assert img.data[0] == 13
    assert img.data[1] == 50
    assert img.data[10] == (10 * 37 + 13) % 256


def test_empty_image():
    img = Image.empty()
    assert img.is_empty
    assert img.geometry == (0, 0, 0)


@pytest.mark.parametrize("image", [
    Image(0, 4, 1, np.zeros(0)),
    Image(4, 0, 3, np.zeros(0)),
    Image(2, 2, 2, np.zeros(8)),
    Image(2, 2, 4, np.zeros(16)),
    Image(4, 4, 1, np.zeros(15)),
    Image(4, 4, 3, np.zeros(16)),
])
def test_invalid_images(image):
    with pytest.raises(ImageValidationError):
        validate_image(image)


def test_valid_images():
    validate_image(make_constant(1, 1, 1, 7))
    validate_image(make_pattern(5, 3, 3))


@pytest.mark.parametrize("gray", [True, False])
def test_save_then_load(tmp_path, gray):
    img = make_pattern(6, 4, 1 if gray else 3)
    path = tmp_path / "motif.png"
    save_image(img, str(path))
    loaded = load_image(str(path), gray=gray)
    assert loaded.geometry == img.geometry
    assert np.array_equal(loaded.data, img.data)
