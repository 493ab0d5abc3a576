"""
Distribution (Scatterv) et collecte (Gatherv) des tranches de lignes.

Les deux opérations utilisent exactement les mêmes tailles et déplacements
en octets, dérivés du même PartitionPlan : la collecte est le miroir de la
distribution.
"""
import logging

import numpy as np
from mpi4py import MPI

from .errors import CommunicationError
from .image import PixelBuffer

logger = logging.getLogger(__name__)


def scatter_rows(comm, plan, source, width, channels, root=0):
    """
    Envoie à chaque processus sa tranche de lignes contiguë.
    `source` (tampon plat de l'image entière) n'est lu que sur `root`.
    Les rangs sans lignes reçoivent un tampon vide.
    """
    rank = comm.Get_rank()
    row_stride = width * channels
    counts = plan.byte_counts(row_stride)
    displs = plan.byte_offsets(row_stride)

    local = np.empty(counts[rank], dtype=np.uint8)
    sendbuf = None
    if rank == root:
        sendbuf = [np.ascontiguousarray(source, dtype=np.uint8), counts, displs, MPI.UNSIGNED_CHAR]
    try:
        comm.Scatterv(sendbuf, [local, MPI.UNSIGNED_CHAR], root=root)
    except MPI.Exception as exc:
        raise CommunicationError(f"Scatterv a échoué sur le rang {rank}") from exc
    logger.debug("rang %d : %d octets reçus (%d lignes)", rank, local.size, plan.row_counts[rank])
    return PixelBuffer(local, width, channels)


def gather_rows(comm, plan, local, output=None, root=0):
    """
    Rassemble les tranches calculées dans `output` (tampon plat de l'image
    entière, alloué par l'appelant et lu uniquement sur `root`), dans l'ordre
    des lignes. Renvoie `output` sur `root`, None ailleurs.
    """
    rank = comm.Get_rank()
    row_stride = local.row_stride
    counts = plan.byte_counts(row_stride)
    displs = plan.byte_offsets(row_stride)

    if local.data.size != counts[rank]:
        raise ValueError(f"rang {rank} : {local.data.size} octets à envoyer, {counts[rank]} prévus")

    recvbuf = None
    if rank == root:
        if output is None or output.size != plan.height * row_stride:
            raise ValueError(f"tampon de sortie invalide sur la racine, {plan.height * row_stride} octets attendus")
        recvbuf = [output, counts, displs, MPI.UNSIGNED_CHAR]
    try:
        comm.Gatherv([np.ascontiguousarray(local.data), MPI.UNSIGNED_CHAR], recvbuf, root=root)
    except MPI.Exception as exc:
        raise CommunicationError(f"Gatherv a échoué sur le rang {rank}") from exc
    return output if rank == root else None
