"""Append-only text outputs of a run.

Files (all prefixed with the run id, inside the output directory):

  <run>_summary.txt    header + one row per logged tick:
                       tick n_segregating heterozygosity mean_phenotype sd_phenotype
  <run>_mutations.txt  per snapshot tick: '#TICK <tick> <n>' then one row per
                       registered mutation:
                       id type position effect dominance subpop origin_tick prevalence
  <run>_presence.txt   per snapshot tick: one row per mutation carried by at
                       least one genome: id tick bits   (bits = 2N chars of 0/1)
  <run>_run.yaml       provenance: seed, run id, config, hashes; a
                       'completion' block is appended when the run finishes

Headers are written when the writer opens; afterwards files are only
appended to. Any OSError propagates and aborts the run.

Usage:
    with OutputWriters("output/", run_id, n_genomes=20000) as out:
        out.write_metadata({...})
        out.write_summary(tick, ...)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict

import numpy as np
import yaml

from stabsel.config import SimulationConfig
from stabsel.genomes import GenomePool
from stabsel.provenance import checksums as file_checksums
from stabsel.registry import MutationRegistry
from stabsel.types import DOMINANCE, SUBPOP_LABEL, MutationType

logger = logging.getLogger(__name__)

SUMMARY_HEADER = "tick n_segregating heterozygosity mean_phenotype sd_phenotype"

_TYPE_LABELS = {int(t): t.label for t in MutationType}


def _fmt(x: float) -> str:
    return f"{x:.10g}"


def make_run_id(config: SimulationConfig) -> str:
    """Run identifier: explicit config value, else built from key parameters."""
    if config.simulation.run_id:
        return config.simulation.run_id
    return (
        f"F{config.selection.factor:g}"
        f"_L{config.simulation.genome_size}"
        f"_G{config.effects.mean:g}"
        f"_s{config.simulation.seed}"
    )


class OutputWriters:
    """Owns the open handles of one run's output files."""

    def __init__(
        self,
        directory: str | Path,
        run_id: str,
        n_genomes: int,
        write_catalog: bool = True,
        write_presence: bool = True,
    ):
        self.directory = Path(directory)
        self.run_id = run_id
        self.n_genomes = n_genomes
        self.catalog_enabled = write_catalog
        self.presence_enabled = write_presence
        self._summary = None
        self._catalog = None
        self._presence = None

    # ── Paths ────────────────────────────────────────────────────────

    def _path(self, suffix: str) -> Path:
        return self.directory / f"{self.run_id}_{suffix}"

    @property
    def summary_path(self) -> Path:
        return self._path("summary.txt")

    @property
    def catalog_path(self) -> Path:
        return self._path("mutations.txt")

    @property
    def presence_path(self) -> Path:
        return self._path("presence.txt")

    @property
    def metadata_path(self) -> Path:
        return self._path("run.yaml")

    def output_paths(self) -> Dict[str, Path]:
        paths = {'summary': self.summary_path}
        if self.catalog_enabled:
            paths['mutations'] = self.catalog_path
        if self.presence_enabled:
            paths['presence'] = self.presence_path
        return paths

    # ── Lifecycle ────────────────────────────────────────────────────

    def open(self) -> 'OutputWriters':
        self.directory.mkdir(parents=True, exist_ok=True)
        try:
            self._summary = open(self.summary_path, 'w')
            self._summary.write(SUMMARY_HEADER + "\n")
            self._summary.flush()
            if self.catalog_enabled:
                self._catalog = open(self.catalog_path, 'w')
            if self.presence_enabled:
                self._presence = open(self.presence_path, 'w')
        except BaseException:
            # __exit__ never runs when __enter__ raises
            self.close()
            raise
        logger.info("Writing outputs for run %s to %s", self.run_id, self.directory)
        return self

    def close(self) -> None:
        for name in ('_summary', '_catalog', '_presence'):
            handle = getattr(self, name)
            if handle is not None:
                handle.close()
                setattr(self, name, None)

    def __enter__(self) -> 'OutputWriters':
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ── Writers ──────────────────────────────────────────────────────

    def write_summary(
        self,
        tick: int,
        n_segregating: int,
        heterozygosity: float,
        mean_phenotype: float,
        sd_phenotype: float,
    ) -> None:
        self._summary.write(
            f"{tick} {n_segregating} {_fmt(heterozygosity)} "
            f"{_fmt(mean_phenotype)} {_fmt(sd_phenotype)}\n"
        )
        self._summary.flush()

    def write_catalog(
        self,
        tick: int,
        registry: MutationRegistry,
        counts: np.ndarray,
    ) -> None:
        """Dump every mutation ever registered, with its current prevalence."""
        if self._catalog is None:
            return
        n = len(registry)
        lines = [f"#TICK {tick} {n}\n"]
        rows = zip(
            registry.types.tolist(),
            registry.positions.tolist(),
            registry.effects.tolist(),
            registry.origin_ticks.tolist(),
            counts.tolist(),
        )
        dominance = _fmt(DOMINANCE)
        for mid, (mtype, pos, eff, origin, prev) in enumerate(rows):
            lines.append(
                f"{mid} {_TYPE_LABELS[mtype]} {pos} {_fmt(eff)} {dominance} "
                f"{SUBPOP_LABEL} {origin} {prev}\n"
            )
        self._catalog.writelines(lines)
        self._catalog.flush()

    def write_presence(
        self,
        tick: int,
        pool: GenomePool,
        counts: np.ndarray,
    ) -> None:
        """One 0/1 row over all genomes per mutation currently in the pool."""
        if self._presence is None:
            return
        present = np.flatnonzero(counts > 0)
        matrix = pool.presence_matrix(present)
        matrix += ord('0')
        for mid, row in zip(present.tolist(), matrix):
            self._presence.write(f"{mid} {tick} {row.tobytes().decode('ascii')}\n")
        self._presence.flush()

    def write_metadata(self, metadata: Dict[str, Any]) -> None:
        """Write the provenance file at run start."""
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(self.metadata_path, 'w') as f:
            yaml.safe_dump(metadata, f, sort_keys=False)

    def append_completion(self, completion: Dict[str, Any], checksums: bool = True) -> None:
        """Append a 'completion' block (final state + output checksums)."""
        block = dict(completion)
        if checksums:
            for handle in ('_summary', '_catalog', '_presence'):
                h = getattr(self, handle)
                if h is not None:
                    h.flush()
            block['sha256'] = file_checksums(self.output_paths())
        with open(self.metadata_path, 'a') as f:
            yaml.safe_dump({'completion': block}, f, sort_keys=False)
