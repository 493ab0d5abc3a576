"""
Flou moyen 3x3 distribué sur les lignes d'une image.

    mpirun -n 4 python -m halo_blur datas/paysage.jpg sorties/paysage_flou.png
    mpirun -n 4 python -m halo_blur --synthetic 1024 768 3 --check
"""
import argparse
import logging
import os
import sys

import numpy as np
from mpi4py import MPI
from PIL import UnidentifiedImageError

from .errors import CommunicationError, ImageValidationError
from .image import load_image, make_pattern, save_image
from .reference import blur_reference
from .task import ROOT, DistributedBlurTask, SequentialBlurTask


def build_arg_parser():
    parser = argparse.ArgumentParser(description="Flou moyen 3x3 distribué par tranches de lignes")
    src = parser.add_mutually_exclusive_group(required=True)
    src.add_argument("input", nargs="?", help="image d'entrée (lue par le processus 0)")
    src.add_argument("--synthetic", nargs=3, type=int, metavar=("W", "H", "C"),
                     help="image de test générée de taille WxH avec C canaux")
    parser.add_argument("-o", "--output", help="image de sortie (écrite par le processus 0)")
    parser.add_argument("--gray", action="store_true", help="charger l'image en niveaux de gris")
    parser.add_argument("--check", action="store_true", help="comparer au calcul séquentiel")
    parser.add_argument("--seq", action="store_true", help="calcul séquentiel sur le processus 0")
    parser.add_argument("-v", "--verbose", action="store_true", help="journalisation détaillée")
    return parser


def setup_logging(rank, verbose=False):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format=f"[Processus {rank}] %(levelname)s %(name)s: %(message)s")


def _load(args):
    if args.synthetic:
        width, height, channels = args.synthetic
        return make_pattern(width, height, channels)
    return load_image(args.input, gray=args.gray)


def main(argv=None):
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    if args.seq and args.check:
        parser.error("--check compare au calcul séquentiel, incompatible avec --seq")

    comm = MPI.COMM_WORLD
    rank = comm.Get_rank()
    size = comm.Get_size()
    setup_logging(rank, args.verbose)
    logger = logging.getLogger("halo_blur")

    image = None
    if rank == ROOT:
        try:
            image = _load(args)
        except (OSError, UnidentifiedImageError) as exc:
            # image None : la validation échoue alors sur tous les rangs
            logger.error("impossible de charger %s : %s", args.input, exc)
    if image is not None:
        logger.info("taille de l'image : %dx%d, %d canal(aux)", image.width, image.height, image.channels)

    if args.seq:
        if rank != ROOT:
            return 0
        start_time = MPI.Wtime()
        try:
            result = SequentialBlurTask(image).execute()
        except ImageValidationError as exc:
            print(f"image invalide : {exc}", file=sys.stderr)
            return 2
        elapsed = MPI.Wtime() - start_time
        nprocs = 1
    else:
        task = DistributedBlurTask(image, comm=comm, root=ROOT)
        try:
            result = task.execute()
        except ImageValidationError as exc:
            if rank == ROOT:
                print(f"image invalide : {exc}", file=sys.stderr)
            return 2
        except CommunicationError:
            logger.exception("échec de communication, arrêt de tous les processus")
            comm.Abort(1)
            return 1
        if rank != ROOT:
            return 0
        elapsed = task.elapsed
        nprocs = size

    print(f"Traitement terminé en {elapsed:.4f} secondes avec {nprocs} processus.")

    status = 0
    if args.check:
        expected = blur_reference(image)
        if np.array_equal(result.data, expected.data):
            print("vérification : OK")
        else:
            mismatches = int(np.count_nonzero(result.data != expected.data))
            print(f"vérification : ÉCHEC ({mismatches} octets différents)")
            status = 1

    if args.output:
        out_dir = os.path.dirname(args.output)
        if out_dir and not os.path.exists(out_dir):
            os.makedirs(out_dir)
        save_image(result, args.output)
        print("Image sauvegardée")
    return status


if __name__ == "__main__":
    sys.exit(main())
