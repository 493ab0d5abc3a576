"""
Communicateur de test : chaque rang est un thread, les collectives passent par
une barrière partagée et les Sendrecv par des files. Il reproduit la partie de
l'API mpi4py utilisée par halo_blur, ce qui permet de tester plusieurs rangs
sans mpirun.
"""
import copy
import queue
import threading

import numpy as np
import pytest
from mpi4py import MPI

TIMEOUT = 10.0


def _array(buf):
    return buf[0] if isinstance(buf, (list, tuple)) else buf


class _World:
    def __init__(self, size):
        self.size = size
        self.barrier = threading.Barrier(size, timeout=TIMEOUT)
        self.slots = [None] * size
        self.lock = threading.Lock()
        self.queues = {}

    def queue(self, key):
        with self.lock:
            return self.queues.setdefault(key, queue.Queue())


class ThreadComm:
    def __init__(self, world, rank):
        self.world = world
        self.rank = rank
        self.sendrecv_calls = []

    def Get_rank(self):
        return self.rank

    def Get_size(self):
        return self.world.size

    def _allgather(self, value):
        self.world.slots[self.rank] = value
        self.world.barrier.wait()
        values = list(self.world.slots)
        self.world.barrier.wait()
        return values

    def Barrier(self):
        self.world.barrier.wait()

    def bcast(self, obj, root=0):
        return copy.deepcopy(self._allgather(obj)[root])

    def gather(self, obj, root=0):
        values = self._allgather(obj)
        return values if self.rank == root else None

    def reduce(self, value, op=MPI.SUM, root=0):
        values = self._allgather(value)
        if self.rank != root:
            return None
        if op == MPI.MAX:
            return max(values)
        if op == MPI.MIN:
            return min(values)
        return sum(values)

    def Scatterv(self, sendbuf, recvbuf, root=0):
        values = self._allgather(sendbuf if self.rank == root else None)
        data, counts, displs = values[root][:3]
        start = displs[self.rank]
        _array(recvbuf)[:] = data[start:start + counts[self.rank]]

    def Gatherv(self, sendbuf, recvbuf, root=0):
        values = self._allgather(np.array(_array(sendbuf), copy=True))
        if self.rank != root:
            return
        out, counts, displs = recvbuf[:3]
        for r, chunk in enumerate(values):
            out[displs[r]:displs[r] + counts[r]] = chunk

    def Sendrecv(self, sendbuf, dest, sendtag=0, recvbuf=None, source=MPI.ANY_SOURCE, recvtag=MPI.ANY_TAG):
        self.sendrecv_calls.append((dest, source))
        self.world.queue((self.rank, dest, sendtag)).put(np.array(_array(sendbuf), copy=True))
        data = self.world.queue((source, self.rank, recvtag)).get(timeout=TIMEOUT)
        _array(recvbuf)[:] = data


def run_ranks(size, target, expect_errors=False):
    """
    Lance `target(comm)` sur `size` rangs simulés.
    Renvoie la liste des résultats par rang, ou celle des exceptions
    si `expect_errors` est vrai.
    """
    world = _World(size)
    results = [None] * size
    errors = [None] * size

    def worker(rank):
        try:
            results[rank] = target(ThreadComm(world, rank))
        except Exception as exc:
            errors[rank] = exc

    threads = [threading.Thread(target=worker, args=(rank,), daemon=True) for rank in range(size)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(TIMEOUT * 2)
    assert not any(thread.is_alive() for thread in threads), "rangs bloqués"

    if expect_errors:
        return errors
    real = [exc for exc in errors if exc is not None and not isinstance(exc, threading.BrokenBarrierError)]
    if real:
        raise real[0]
    if any(errors):
        raise next(exc for exc in errors if exc is not None)
    return results


@pytest.fixture
def spmd():
    return run_ranks
