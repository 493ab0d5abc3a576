from dataclasses import dataclass


@dataclass(frozen=True)
class Partition:
    rank: int
    start_row: int
    count: int

    @property
    def stop_row(self):
        return self.start_row + self.count


@dataclass(frozen=True)
class PartitionPlan:
    """
    Répartition des lignes de l'image entre les processus, calculée une seule
    fois à partir de (hauteur, nombre de processus) et identique partout.
    """

    height: int
    workers: int
    effective_workers: int
    row_counts: tuple
    row_offsets: tuple

    def partition(self, rank):
        return Partition(rank, self.row_offsets[rank], self.row_counts[rank])

    def participates(self, rank):
        return rank < self.effective_workers

    def byte_counts(self, row_stride):
        return tuple(count * row_stride for count in self.row_counts)

    def byte_offsets(self, row_stride):
        return tuple(offset * row_stride for offset in self.row_offsets)


def plan_partition(height, workers):
    """
    Répartit équitablement les lignes entre min(workers, height) processus,
    les lignes restantes allant aux premiers rangs. Les rangs au-delà ne
    reçoivent aucune ligne.
    """
    if height < 1:
        raise ValueError(f"hauteur invalide : {height}")
    if workers < 1:
        raise ValueError(f"nombre de processus invalide : {workers}")

    effective = min(workers, height)
    rows_per_proc = height // effective
    remainder = height % effective

    counts = []
    offsets = []
    start = 0
    for rank in range(workers):
        if rank < effective:
            count = rows_per_proc + (1 if rank < remainder else 0)
        else:
            count = 0
        counts.append(count)
        offsets.append(start)
        start += count

    return PartitionPlan(height, workers, effective, tuple(counts), tuple(offsets))
