import logging
from dataclasses import dataclass

import numpy as np
from mpi4py import MPI

from .errors import CommunicationError

logger = logging.getLogger(__name__)

# étiquettes : sens de déplacement de la ligne envoyée
TAG_UP = 0
TAG_DOWN = 1


@dataclass
class Halos:
    """Ligne au-dessus et ligne en dessous de la tranche locale (voisine ou recopiée)."""
    top: np.ndarray
    bottom: np.ndarray


def _sendrecv(comm, row, neighbor, sendtag, recvtag):
    received = np.empty_like(row)
    try:
        comm.Sendrecv([np.ascontiguousarray(row), MPI.UNSIGNED_CHAR], dest=neighbor, sendtag=sendtag,
                      recvbuf=[received, MPI.UNSIGNED_CHAR], source=neighbor, recvtag=recvtag)
    except MPI.Exception as exc:
        raise CommunicationError(f"échange de halo avec le rang {neighbor} a échoué") from exc
    return received


def exchange_halos(comm, plan, rank, local):
    """
    Échange les lignes fantômes avec les voisins verticaux du haut et du bas.

    Aux bords globaux de l'image, la ligne de bord de la tranche est recopiée
    (bord étendu) sans aucune communication. Chaque échange avec un voisin
    est un Sendrecv apparié, ce qui évite l'interblocage entre voisins.
    """
    if not plan.participates(rank) or local.rows == 0:
        raise ValueError(f"le rang {rank} ne possède aucune ligne")

    first = local.row(0)
    last = local.row(local.rows - 1)

    if rank == 0:
        top = first.copy()
    else:
        top = _sendrecv(comm, first, rank - 1, TAG_UP, TAG_DOWN)

    if rank == plan.effective_workers - 1:
        bottom = last.copy()
    else:
        bottom = _sendrecv(comm, last, rank + 1, TAG_DOWN, TAG_UP)

    logger.debug("rang %d : halos prêts (haut=%s, bas=%s)", rank,
                 "recopie" if rank == 0 else rank - 1,
                 "recopie" if rank == plan.effective_workers - 1 else rank + 1)
    return Halos(top, bottom)
