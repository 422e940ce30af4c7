"""Tests for stabsel.provenance — hashes and version stamps."""

import hashlib
import logging

from stabsel.config import default_config
from stabsel.provenance import (
    checksums,
    config_digest,
    git_revision,
    library_versions,
    run_provenance,
    sha256_file,
    timer,
)


class TestDigests:
    def test_sha256_file(self, tmp_path):
        path = tmp_path / "f.txt"
        path.write_bytes(b"tick 1\n")
        assert sha256_file(path) == hashlib.sha256(b"tick 1\n").hexdigest()

    def test_checksums_keyed_by_name(self, tmp_path):
        a = tmp_path / "a.txt"
        b = tmp_path / "b.txt"
        a.write_text("x")
        b.write_text("y")
        sums = checksums({'summary': a, 'presence': b})
        assert set(sums) == {'summary', 'presence'}
        assert sums['summary'] != sums['presence']

    def test_config_digest_key_order_independent(self):
        assert config_digest({'a': 1, 'b': [1, 2]}) == config_digest({'b': [1, 2], 'a': 1})

    def test_config_digest_tracks_values(self):
        cfg = default_config()
        before = config_digest(cfg.to_dict())
        cfg.selection.factor = 2.0
        assert config_digest(cfg.to_dict()) != before


class TestRunProvenance:
    def test_git_revision_outside_repo(self, tmp_path):
        assert git_revision(tmp_path) == 'unknown'

    def test_versions(self):
        versions = library_versions()
        assert {'python', 'numpy', 'scipy', 'pyyaml'} <= set(versions)
        assert all(isinstance(v, str) for v in versions.values())

    def test_block(self):
        block = run_provenance(default_config().to_dict())
        assert set(block) == {'config_hash', 'git_hash', 'versions'}
        assert len(block['config_hash']) == 64


def test_timer_logs_elapsed(caplog):
    with caplog.at_level(logging.INFO, logger="stabsel.provenance"):
        with timer("block"):
            pass
    assert any("[block]" in r.getMessage() for r in caplog.records)
