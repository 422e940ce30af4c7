"""Tests for stabsel.output — append-only text outputs."""

import numpy as np
import pytest
import yaml

from stabsel.config import default_config
from stabsel.genomes import GenomePool
from stabsel.output import SUMMARY_HEADER, OutputWriters, make_run_id
from stabsel.provenance import sha256_file
from stabsel.registry import MutationRegistry
from stabsel.types import MutationType


@pytest.fixture
def registry():
    reg = MutationRegistry()
    reg.create_mutation(10, 0.5, origin_tick=1)
    reg.create_mutation(20, 0.0, origin_tick=2, mutation_type=MutationType.NEUTRAL)
    reg.create_mutation(30, -0.125, origin_tick=3)
    return reg


@pytest.fixture
def pool():
    # 2 individuals / 4 genomes; mutation 2 has been lost
    return GenomePool.from_genomes([[0], [0, 1], [], [0]])


def _lines(path):
    return path.read_text().splitlines()


class TestRunId:
    def test_built_from_parameters(self):
        assert make_run_id(default_config()) == "F1_L100000_G-0.1_s42"

    def test_explicit_run_id(self):
        cfg = default_config()
        cfg.simulation.run_id = "my_run"
        assert make_run_id(cfg) == "my_run"


class TestSummary:
    def test_header_and_rows(self, tmp_path):
        with OutputWriters(tmp_path, "r", n_genomes=4) as out:
            out.write_summary(10, 3, 0.001, -0.5, 0.25)
            out.write_summary(20, 4, 0.002, -0.25, 0.5)
        lines = _lines(out.summary_path)
        assert lines[0] == SUMMARY_HEADER
        assert lines[1] == "10 3 0.001 -0.5 0.25"
        assert lines[2] == "20 4 0.002 -0.25 0.5"

    def test_directory_created(self, tmp_path):
        target = tmp_path / "nested" / "dir"
        with OutputWriters(target, "r", n_genomes=4) as out:
            pass
        assert out.summary_path.exists()

    def test_reopen_truncates(self, tmp_path):
        with OutputWriters(tmp_path, "r", n_genomes=4) as out:
            out.write_summary(1, 0, 0.0, 0.0, 0.0)
        with OutputWriters(tmp_path, "r", n_genomes=4):
            pass
        assert _lines(out.summary_path) == [SUMMARY_HEADER]


class TestSnapshots:
    def test_catalog_lists_every_mutation(self, tmp_path, registry, pool):
        counts = registry.prevalence(pool)
        with OutputWriters(tmp_path, "r", n_genomes=4) as out:
            out.write_catalog(5, registry, counts)
        lines = _lines(out.catalog_path)
        assert lines == [
            "#TICK 5 3",
            "0 m1 10 0.5 0.5 p1 1 3",
            "1 m2 20 0 0.5 p1 2 1",
            "2 m1 30 -0.125 0.5 p1 3 0",
        ]

    def test_catalog_blocks_append(self, tmp_path, registry, pool):
        counts = registry.prevalence(pool)
        with OutputWriters(tmp_path, "r", n_genomes=4) as out:
            out.write_catalog(5, registry, counts)
            out.write_catalog(6, registry, counts)
        headers = [l for l in _lines(out.catalog_path) if l.startswith("#TICK")]
        assert headers == ["#TICK 5 3", "#TICK 6 3"]

    def test_presence_rows(self, tmp_path, registry, pool):
        counts = registry.prevalence(pool)
        with OutputWriters(tmp_path, "r", n_genomes=4) as out:
            out.write_presence(5, pool, counts)
        assert _lines(out.presence_path) == ["0 5 1101", "1 5 0100"]

    def test_disabled_snapshots(self, tmp_path, registry, pool):
        counts = registry.prevalence(pool)
        with OutputWriters(tmp_path, "r", n_genomes=4,
                           write_catalog=False, write_presence=False) as out:
            out.write_catalog(5, registry, counts)
            out.write_presence(5, pool, counts)
        assert not out.catalog_path.exists()
        assert not out.presence_path.exists()
        assert set(out.output_paths()) == {'summary'}


class TestMetadata:
    def test_metadata_and_completion(self, tmp_path):
        with OutputWriters(tmp_path, "r", n_genomes=4) as out:
            out.write_metadata({'run_id': 'r', 'seed': 3})
            out.write_summary(1, 0, 0.0, 0.0, 0.0)
            out.append_completion({'final_tick': 1, 'sd': None})
        meta = yaml.safe_load(out.metadata_path.read_text())
        assert meta['run_id'] == 'r'
        assert meta['seed'] == 3
        assert meta['completion']['final_tick'] == 1
        assert meta['completion']['sha256']['summary'] == sha256_file(out.summary_path)
        assert set(meta['completion']['sha256']) == {'summary', 'mutations', 'presence'}

    def test_completion_without_checksums(self, tmp_path):
        with OutputWriters(tmp_path, "r", n_genomes=4) as out:
            out.write_metadata({'run_id': 'r'})
            out.append_completion({'final_tick': 2}, checksums=False)
        meta = yaml.safe_load(out.metadata_path.read_text())
        assert 'sha256' not in meta['completion']


class TestIOFailure:
    def test_failed_open_closes_earlier_handles(self, tmp_path):
        writers = OutputWriters(tmp_path, "r", n_genomes=4)
        writers.presence_path.mkdir()
        with pytest.raises(OSError):
            with writers:
                pass
        assert writers._summary is None
        assert writers._catalog is None
        assert writers._presence is None

    def test_directory_is_a_file(self, tmp_path):
        blocker = tmp_path / "out"
        blocker.write_text("not a directory")
        with pytest.raises(OSError):
            OutputWriters(blocker, "r", n_genomes=4).open()
