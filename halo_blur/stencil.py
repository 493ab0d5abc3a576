import numpy as np

from .image import PixelBuffer

KERNEL_SIZE = 3
KERNEL_AREA = KERNEL_SIZE * KERNEL_SIZE


def clamped_columns(width, offset):
    """Indices de colonnes décalés de `offset`, ramenés dans [0, width - 1]."""
    return np.clip(np.arange(width) + offset, 0, width - 1)


def blur_rows(local, halos):
    """
    Flou moyen 3x3 sur toutes les lignes de la tranche locale.

    Les voisins verticaux sont lus dans l'empilement [halo haut, lignes
    locales, halo bas], que le halo vienne d'un voisin ou soit une recopie
    du bord. Les voisins horizontaux sont obtenus en bornant l'indice de
    colonne. Somme entière des 9 échantillons, division entière par 9.
    """
    width, channels, rows = local.width, local.channels, local.rows
    stack = np.concatenate([
        halos.top.reshape(1, width, channels),
        local.as_array(),
        halos.bottom.reshape(1, width, channels),
    ]).astype(np.int32)

    total = np.zeros((rows, width, channels), dtype=np.int32)
    for dy in range(KERNEL_SIZE):
        band = stack[dy:dy + rows]
        for dx in (-1, 0, 1):
            total += band[:, clamped_columns(width, dx), :]

    result = (total // KERNEL_AREA).astype(np.uint8)
    return PixelBuffer(result.reshape(-1), width, channels)
