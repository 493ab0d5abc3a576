from dataclasses import dataclass, field

import numpy as np
from PIL import Image as PILImage

from .errors import ImageValidationError

SUPPORTED_CHANNELS = (1, 3)


class PixelBuffer:
    """
    Vue par lignes sur un tampon plat d'octets (ordre ligne par ligne,
    un pas de ligne = largeur * canaux).
    """

    def __init__(self, data, width, channels):
        self.data = np.asarray(data, dtype=np.uint8).reshape(-1)
        self.width = width
        self.channels = channels
        if self.row_stride and self.data.size % self.row_stride:
            raise ValueError(f"tampon de {self.data.size} octets incompatible avec un pas de {self.row_stride}")

    @property
    def row_stride(self):
        return self.width * self.channels

    @property
    def rows(self):
        return self.data.size // self.row_stride if self.row_stride else 0

    def at(self, row, col, channel):
        return int(self.data[row * self.row_stride + col * self.channels + channel])

    def row(self, index):
        start = index * self.row_stride
        return self.data[start:start + self.row_stride]

    def slice_rows(self, start, count):
        # vue, pas de copie
        return PixelBuffer(self.data[start * self.row_stride:(start + count) * self.row_stride],
                           self.width, self.channels)

    def as_array(self):
        return self.data.reshape(self.rows, self.width, self.channels)


@dataclass
class Image:
    width: int
    height: int
    channels: int
    data: np.ndarray = field(default_factory=lambda: np.empty(0, dtype=np.uint8))

    def __post_init__(self):
        self.data = np.asarray(self.data, dtype=np.uint8).reshape(-1)

    @classmethod
    def empty(cls):
        """Valeur « pas de données ici » tenue par les processus non collecteurs."""
        return cls(0, 0, 0)

    @classmethod
    def allocate(cls, width, height, channels):
        """Image de sortie remplie de zéros, de géométrie donnée."""
        return cls(width, height, channels, np.zeros(width * height * channels, dtype=np.uint8))

    @classmethod
    def from_array(cls, array):
        array = np.asarray(array, dtype=np.uint8)
        if array.ndim == 2:
            array = array[:, :, np.newaxis]
        height, width, channels = array.shape
        return cls(width, height, channels, np.ascontiguousarray(array).reshape(-1))

    @property
    def is_empty(self):
        return self.data.size == 0

    @property
    def row_stride(self):
        return self.width * self.channels

    @property
    def geometry(self):
        return self.width, self.height, self.channels

    def pixels(self):
        return PixelBuffer(self.data, self.width, self.channels)

    def as_array(self):
        return self.data.reshape(self.height, self.width, self.channels)

    def same_geometry(self, other):
        return self.geometry == other.geometry and self.data.size == other.data.size


def check_geometry(width, height, channels):
    if width <= 0 or height <= 0:
        raise ImageValidationError(f"dimensions invalides : {width}x{height}")
    if channels not in SUPPORTED_CHANNELS:
        raise ImageValidationError(f"nombre de canaux non supporté : {channels}")


def validate_image(image):
    """
    Vérifie largeur > 0, hauteur > 0, canaux dans {1, 3} et
    taille du tampon == largeur * hauteur * canaux.
    """
    check_geometry(image.width, image.height, image.channels)
    expected = image.width * image.height * image.channels
    if image.data.size != expected:
        raise ImageValidationError(f"tampon de {image.data.size} octets, {expected} attendus")


def make_pattern(width, height, channels):
    """Image de test : l'octet d'indice i vaut (i * 37 + 13) % 256."""
    index = np.arange(width * height * channels, dtype=np.int64)
    return Image(width, height, channels, ((index * 37 + 13) % 256).astype(np.uint8))


def make_constant(width, height, channels, value):
    return Image(width, height, channels, np.full(width * height * channels, value, dtype=np.uint8))


def load_image(path, gray=False):
    img = PILImage.open(path)
    img = img.convert('L' if gray else 'RGB')
    return Image.from_array(np.array(img))


def save_image(image, path):
    array = image.as_array()
    if image.channels == 1:
        PILImage.fromarray(array[:, :, 0], 'L').save(path)
    else:
        PILImage.fromarray(array, 'RGB').save(path)
