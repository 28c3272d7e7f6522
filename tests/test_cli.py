"""
Tests for the section-frames command line.
"""

import json

import pytest

from section_frames.cli import build_parser, main
from section_frames.io.model_loader import load_model
from section_frames.project_config import CONFIG_FILENAME


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path, monkeypatch):
    """Keep configuration lookups away from the developer's files."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))


class TestParser:
    """Tests for build_parser."""

    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_elevate_options(self):
        args = build_parser().parse_args(
            ["elevate", "m.json", "wall-1", "--categories", "Doors", "Columns", "-v"]
        )
        assert args.refs == ["wall-1"]
        assert args.categories == ["Doors", "Columns"]
        assert args.verbose


class TestFrameCommand:
    """Tests for `section-frames frame`."""

    def test_prints_frames(self, model_path, capsys):
        assert main(["frame", str(model_path), "wall-1", "door-7"]) == 0

        frames = json.loads(capsys.readouterr().out)
        assert frames["wall-1"]["kind"] == "curve_based"
        assert frames["wall-1"]["origin"] == pytest.approx([5.0, 0.0, 4.0])
        assert frames["door-7"]["kind"] == "hosted_on_curve_host"

    def test_invalid_frame_exit_code(self, model_path, capsys):
        assert main(["frame", str(model_path), "ghost-1"]) == 1
        frames = json.loads(capsys.readouterr().out)
        assert frames["ghost-1"] == {
            'valid': False, 'reason': "no bounding box", 'kind': "bounded_volume_only",
        }

    def test_missing_model(self, tmp_path):
        assert main(["frame", str(tmp_path / "absent.json"), "wall-1"]) == 1


class TestElevateCommand:
    """Tests for `section-frames elevate`."""

    def test_elevate_and_save(self, model_path, tmp_path, capsys):
        out = tmp_path / "out.json"
        report = tmp_path / "report.json"

        code = main([
            "elevate", str(model_path), "wall-1", "door-7",
            "--template", "Elevation Template",
            "--save", str(out), "--report", str(report),
        ])

        assert code == 0
        assert "Auto Elevation Summary" in capsys.readouterr().out
        saved = load_model(out)
        assert sorted(s.number for s in saved.sheets()) == ["SF_Door 900_door-7", "SF_Walls_wall-1"]
        elevation = saved.find_view_by_name("Walls_wall-1_Elevation")
        assert elevation.template_ref == "v-template"

        data = json.loads(report.read_text(encoding='utf-8'))
        assert data['successful'] == 2

    def test_all_entities_with_failure(self, model_path):
        """ghost-1 has no geometry, so the run reports a failure."""
        assert main(["elevate", str(model_path)]) == 1

    def test_categories(self, model_path, tmp_path):
        out = tmp_path / "out.json"
        assert main(["elevate", str(model_path), "--categories", "Columns", "--save", str(out)]) == 0
        assert [s.number for s in load_model(out).sheets()] == ["SF_Column 400_column-3"]

    def test_unknown_template(self, model_path):
        assert main(["elevate", str(model_path), "wall-1", "--template", "Section A"]) == 1

    def test_config_next_to_model(self, model_path, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            json.dumps({"sheets": {"number_prefix": "E-"}}), encoding='utf-8'
        )
        out = tmp_path / "out.json"
        assert main(["elevate", str(model_path), "wall-1", "--save", str(out)]) == 0
        assert load_model(out).sheets()[0].number == "E-Walls_wall-1"


class TestParallelCommand:
    """Tests for `section-frames parallel`."""

    def test_rotate_and_save(self, model_path, tmp_path, capsys):
        out = tmp_path / "out.json"
        assert main(["parallel", str(model_path), "wall-1", "column-3", "--save", str(out)]) == 0

        outcome = json.loads(capsys.readouterr().out)
        assert outcome['applied'] is True
        assert outcome['plan']['rotatable_proxy_ref'] == "column-3"
        assert load_model(out).entity("column-3").location.rotation == pytest.approx(0.0)

    def test_failure(self, model_path, tmp_path, capsys):
        out = tmp_path / "out.json"
        assert main(["parallel", str(model_path), "wall-1", "proxy-sec", "--save", str(out)]) == 1
        assert json.loads(capsys.readouterr().out)['failure'] == "not_rotatable"
        assert not out.exists()


class TestInitConfig:
    """Tests for `section-frames init-config`."""

    def test_writes_sample(self, tmp_path):
        path = tmp_path / "sample.json"
        assert main(["init-config", str(path)]) == 0
        assert '_comment' in json.loads(path.read_text(encoding='utf-8'))

    def test_default_path(self, tmp_path):
        assert main(["init-config"]) == 0
        assert (tmp_path / CONFIG_FILENAME).exists()
