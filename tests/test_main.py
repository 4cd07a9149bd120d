"""
Tests for the headless runner.
"""

import json

import pytest

from main import main, parse_args


class TestMain:
    """Test the command line entry point."""

    def test_parse_args(self):
        args = parse_args(["--frames", "5", "--slide-root", "--debug"])
        assert args.frames == 5
        assert args.slide_root
        assert args.debug
        assert args.config == "config.yaml"

    def test_writes_frames(self, config_path, tmp_path):
        output = tmp_path / "out" / "frames.json"
        code = main(["--config", str(config_path), "--frames", "3", "--output", str(output)])

        assert code == 0
        data = json.loads(output.read_text())
        assert data["frame_count"] == 3
        assert [f["frame"] for f in data["frames"]] == [0, 1, 2]
        assert "mixamorig:LeftHand" in data["frames"][0]["bones"]

    def test_zero_frames(self, config_path, tmp_path):
        output = tmp_path / "frames.json"
        code = main(["--config", str(config_path), "--frames", "0", "--output", str(output)])

        assert code == 0
        assert json.loads(output.read_text())["frame_count"] == 0

    def test_fps_overrides_config(self, config_path, tmp_path):
        output = tmp_path / "frames.json"
        main(["--config", str(config_path), "--frames", "2", "--fps", "10", "--output", str(output)])

        data = json.loads(output.read_text())
        assert data["fps"] == 10.0
        assert data["frames"][1]["timestamp"] == pytest.approx(0.2)

    def test_rejects_non_positive_fps(self, config_path):
        assert main(["--config", str(config_path), "--frames", "1", "--fps", "0"]) == 1

    def test_slide_root(self, config_path):
        assert main(["--config", str(config_path), "--frames", "2", "--slide-root"]) == 0

    def test_clip_file(self, config_path, tmp_path):
        clip = tmp_path / "nod.json"
        clip.write_text(json.dumps({
            "name": "nod",
            "tracks": {"mixamorig:Head": {
                "times": [0.0, 1.0],
                "rotations": [[0.0, 0.0, 0.0], [0.3, 0.0, 0.0]],
            }},
        }))
        assert main(["--config", str(config_path), "--frames", "2", "--clip", str(clip)]) == 0

    def test_missing_config(self, tmp_path):
        assert main(["--config", str(tmp_path / "nope.yaml")]) == 1

    def test_invalid_constraint(self, tmp_path):
        config = tmp_path / "bad.yaml"
        config.write_text("constraints:\n  - type: distance\n    bone: 0\n")
        assert main(["--config", str(config), "--frames", "1"]) == 1
