from pathlib import Path

from pbit_fixer.container import MASHUP_ENTRY, SCHEMA_ENTRY, list_entries
from pbit_fixer.engine import fix_containers
from pbit_fixer.fixtures import PbitGenerator
from pbit_fixer.fixtures.generate import load_manifest, main, run_manifest
from pbit_fixer.rules import RuleSet

from tests.helpers import schema_json


MANIFEST = Path(__file__).resolve().parents[1] / "pbit_fixer" / "fixtures" / "manifest.yaml"


def test_packaged_manifest_generates_samples(tmp_path):
    written = run_manifest(load_manifest(MANIFEST), tmp_path)
    assert sorted(p.name for p in written) == [
        "already_import.pbit",
        "composite_model.pbit",
        "no_datamashup.pbit",
        "software_distribution.pbit",
    ]
    assert MASHUP_ENTRY not in list_entries(tmp_path / "no_datamashup.pbit")


def test_existing_samples_are_skipped_without_force(tmp_path, capsys):
    assert main(["--output-dir", str(tmp_path)]) == 0
    assert main(["--output-dir", str(tmp_path)]) == 0
    assert "exists, use --force" in capsys.readouterr().out


def test_samples_fix_cleanly(tmp_path):
    run_manifest(load_manifest(MANIFEST), tmp_path)

    reports = fix_containers([tmp_path / "software_distribution.pbit"], RuleSet.EXTENDED)
    (report,) = reports
    assert report.ok
    assert report.schema.redundant_columns_removed == 1
    assert report.schema.cardinalities_removed == 1
    assert report.flags_flipped == 2

    reports = fix_containers(sorted(tmp_path.glob("*.pbit")))
    assert all(r.ok for r in reports)
    by_name = {r.container.name: r for r in reports}
    assert by_name["already_import.pbit"].entries_written == []
    assert by_name["composite_model.pbit"].schema.direct_query_partitions == 2
    assert not by_name["no_datamashup.pbit"].mashup_present
    assert schema_json(tmp_path / "no_datamashup.pbit")["model"]["defaultMode"] == "import"


def test_generator_without_args_writes_empty_model(tmp_path):
    (path,) = PbitGenerator(None).generate(tmp_path, "empty.pbit")

    assert path == (tmp_path / "empty.pbit").resolve()
    assert SCHEMA_ENTRY in list_entries(path)
    assert schema_json(path)["model"]["tables"] == []
