"""
Tâches de flou : validation, pré-traitement, exécution, post-traitement.

SequentialBlurTask applique le flou sur un seul processus.
DistributedBlurTask répartit les lignes entre les processus du communicateur :
distribution, échange des halos, calcul local, collecte sur le processus racine.
"""
import logging

from mpi4py import MPI

from .errors import BlurError, CommunicationError, ImageValidationError
from .halo import exchange_halos
from .image import Image, check_geometry, validate_image
from .partition import plan_partition
from .reference import blur_reference
from .stencil import blur_rows
from .transfer import gather_rows, scatter_rows

logger = logging.getLogger(__name__)

ROOT = 0


class SequentialBlurTask:
    def __init__(self, image):
        self.input = image if image is not None else Image.empty()
        self.output = Image.empty()

    def validation(self):
        validate_image(self.input)

    def pre_processing(self):
        self.output = Image.allocate(self.input.width, self.input.height, self.input.channels)

    def run(self):
        self.output.data[:] = blur_reference(self.input).data

    def post_processing(self):
        if not self.output.same_geometry(self.input):
            raise BlurError("la sortie n'a pas la géométrie de l'entrée")

    def execute(self):
        self.validation()
        self.pre_processing()
        self.run()
        self.post_processing()
        return self.output


class DistributedBlurTask:
    """
    L'image n'a besoin d'être fournie que sur le processus racine ; les
    autres processus passent None. Après `execute()`, seule la racine tient
    l'image floutée, les autres tiennent Image.empty().
    """

    def __init__(self, image=None, comm=None, root=ROOT):
        self.comm = MPI.COMM_WORLD if comm is None else comm
        self.rank = self.comm.Get_rank()
        self.size = self.comm.Get_size()
        self.root = root
        self.input = image if image is not None else Image.empty()
        self.output = Image.empty()
        self.plan = None
        self.elapsed = None

    @property
    def is_root(self):
        return self.rank == self.root

    def _bcast(self, value):
        try:
            return self.comm.bcast(value, root=self.root)
        except MPI.Exception as exc:
            raise CommunicationError(f"bcast a échoué sur le rang {self.rank}") from exc

    def validation(self):
        # seule la racine connaît l'image ; tous les processus reçoivent son verdict
        error = None
        if self.is_root:
            try:
                validate_image(self.input)
            except ImageValidationError as exc:
                error = str(exc)
        error = self._bcast(error)
        if error is not None:
            raise ImageValidationError(error)

    def pre_processing(self):
        if self.is_root:
            self.output = Image.allocate(self.input.width, self.input.height, self.input.channels)
        else:
            self.output = Image.empty()

    def run(self):
        comm = self.comm
        geometry = self._bcast(self.input.geometry if self.is_root else None)
        width, height, channels = geometry
        check_geometry(width, height, channels)

        start_time = MPI.Wtime()

        self.plan = plan_partition(height, self.size)
        if self.is_root:
            logger.debug("répartition des lignes : %s", self.plan.row_counts)

        local = scatter_rows(comm, self.plan, self.input.data if self.is_root else None,
                             width, channels, root=self.root)

        # les rangs sans lignes ne font ni échange ni calcul, mais participent à la collecte
        if self.plan.participates(self.rank):
            halos = exchange_halos(comm, self.plan, self.rank, local)
            blurred = blur_rows(local, halos)
        else:
            logger.debug("rang %d : aucune ligne", self.rank)
            blurred = local

        # la racine reçoit directement dans le tampon alloué au pré-traitement
        gather_rows(comm, self.plan, blurred, self.output.data if self.is_root else None, root=self.root)
        total_time = MPI.Wtime() - start_time
        try:
            comm.Barrier()
            self.elapsed = comm.reduce(total_time, op=MPI.MAX, root=self.root)
        except MPI.Exception as exc:
            raise CommunicationError(f"synchronisation finale a échoué sur le rang {self.rank}") from exc

    def post_processing(self):
        if self.is_root and not self.output.same_geometry(self.input):
            raise BlurError("la sortie n'a pas la géométrie de l'entrée")

    def execute(self):
        self.validation()
        self.pre_processing()
        self.run()
        self.post_processing()
        return self.output


def blur_distributed(image=None, comm=None, root=ROOT):
    """Raccourci : exécute DistributedBlurTask et renvoie l'image de sortie."""
    return DistributedBlurTask(image, comm=comm, root=root).execute()
