import numpy as np
from scipy import signal

from .image import Image

BOX_MASK = np.ones((3, 3), dtype=np.float64)


def blur_reference(image):
    """
    Même flou 3x3 sur l'image entière, sans répartition.
    Pour un masque 3x3, le bord symétrique de convolve2d ('symm') répète
    la ligne/colonne de bord, ce qui revient à borner les indices.
    """
    array = image.as_array().astype(np.float64)
    result = np.empty(array.shape, dtype=np.uint8)
    for ch in range(image.channels):
        sums = signal.convolve2d(array[:, :, ch], BOX_MASK, mode='same', boundary='symm')
        result[:, :, ch] = (np.rint(sums).astype(np.int32) // 9).astype(np.uint8)
    return Image(image.width, image.height, image.channels, result.reshape(-1))
