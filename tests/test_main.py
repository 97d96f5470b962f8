"""Tests for the subcommand dispatcher and the render/preview CLIs."""

import pytest
import yaml
from PIL import Image


def _scene_file(tmp_path, content):
    path = tmp_path / "scene.yaml"
    path.write_text(yaml.dump(content))
    return str(path)


class TestMainDispatcher:
    def test_no_subcommand_shows_help(self, capsys):
        from storycompose.main import main

        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code != 0
        assert "render" in capsys.readouterr().out

    def test_render_subcommand_exists(self):
        from storycompose.main import main

        with pytest.raises(SystemExit):
            main(["render"])  # missing --scene, but subcommand recognized

    def test_preview_subcommand_exists(self):
        from storycompose.main import main

        with pytest.raises(SystemExit):
            main(["preview"])

    def test_invalid_subcommand_errors(self, capsys):
        from storycompose.main import main

        with pytest.raises(SystemExit) as exc_info:
            main(["nonexistent"])
        assert exc_info.value.code != 0


class TestRenderCommand:
    def test_renders_still_story(self, tmp_path, capsys):
        from storycompose.main import main

        scene = _scene_file(tmp_path, {"preview": [360, 640], "text": {"value": "Hello"}})
        out = tmp_path / "story.png"
        main(["render", "--scene", scene, "--output", str(out)])

        assert Image.open(out).size == (1080, 1920)
        assert "DONE" in capsys.readouterr().out

    def test_wrong_suffix_is_fixed(self, tmp_path, capsys):
        from storycompose.main import main

        scene = _scene_file(tmp_path, {"preview": [360, 640], "text": {"value": "Hello"}})
        main(["render", "--scene", scene, "--output", str(tmp_path / "story.mp4")])

        assert (tmp_path / "story.png").exists()
        assert not (tmp_path / "story.mp4").exists()
        assert "NOTE" in capsys.readouterr().out

    def test_validate_only(self, tmp_path, image_file, capsys):
        from storycompose.main import main

        scene = _scene_file(tmp_path, {
            "preview": [360, 640],
            "media": {"path": str(image_file)},
        })
        main(["render", "--scene", scene, "--validate"])
        assert "All paths verified." in capsys.readouterr().out

    def test_output_required_without_validate(self, tmp_path):
        from storycompose.main import main

        scene = _scene_file(tmp_path, {"preview": [360, 640], "text": {"value": "Hi"}})
        with pytest.raises(SystemExit):
            main(["render", "--scene", scene])

    def test_config_override_changes_resolution(self, tmp_path):
        from storycompose.main import main

        scene = _scene_file(tmp_path, {"preview": [360, 640], "text": {"value": "Hello"}})
        config = tmp_path / "settings.yaml"
        config.write_text(yaml.dump({"canonical_resolution": [540, 960]}))
        out = tmp_path / "story.png"
        main(["render", "--scene", scene, "--output", str(out), "--config", str(config)])
        assert Image.open(out).size == (540, 960)

    def test_renders_video_story(self, tmp_path, source_video):
        from storycompose.main import main

        scene = _scene_file(tmp_path, {
            "preview": [360, 640],
            "text": {"value": "Hi"},
            "media": {"path": str(source_video)},
        })
        config = tmp_path / "settings.yaml"
        config.write_text(yaml.dump({"encode": {"preset": "ultrafast"}}))
        out = tmp_path / "story.mp4"
        main(["render", "--scene", scene, "--output", str(out), "--config", str(config)])
        assert out.stat().st_size > 0


class TestPreviewCommand:
    def test_writes_preview_at_scale(self, tmp_path, capsys):
        from storycompose.main import main

        scene = _scene_file(tmp_path, {"preview": [360, 640], "text": {"value": "Hello"}})
        out = tmp_path / "preview.png"
        main(["preview", "--scene", scene, "--output", str(out), "--scale", "2"])

        assert Image.open(out).size == (720, 1280)
        assert "Preview written" in capsys.readouterr().out
