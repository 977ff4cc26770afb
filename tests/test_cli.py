"""
Tests for the command line interface.
"""

import json

import pytest

from conftest import solid, write_rgba
from nodefolio import __version__
from nodefolio.__main__ import main
from nodefolio.pipeline import read_image


class TestRender:
    """Tests for ``nodefolio render``."""

    def test_invert(self, image_file, tmp_path, capsys):
        """Test rendering through the invert tool writes the inverted image."""
        out = tmp_path / "out.png"
        assert main(["render", str(image_file), "-t", "invert", "-o", str(out)]) == 0
        assert read_image(out).tolist() == [[[245, 235, 225, 255], [55, 155, 205, 255]]]
        assert "Wrote" in capsys.readouterr().out

    def test_no_tools(self, image_file, tmp_path):
        """Test rendering without tools copies the image."""
        out = tmp_path / "plain.png"
        assert main(["render", str(image_file), "-o", str(out)]) == 0
        assert read_image(out).tolist() == read_image(image_file).tolist()

    def test_chain_order(self, image_file, tmp_path):
        """Test two inverts cancel out."""
        out = tmp_path / "twice.png"
        argv = ["render", str(image_file), "-t", "invert", "-t", "invert", "-o", str(out)]
        assert main(argv) == 0
        assert read_image(out).tolist() == read_image(image_file).tolist()

    def test_ragdoll_frames(self, tmp_path, capsys):
        """Test the physics overlay is simulated for the requested frames."""
        image = write_rgba(tmp_path / "wall.png", solid(200, 130, (255, 255, 255, 255)))
        out = tmp_path / "ragdoll.png"
        argv = ["render", str(image), "-t", "ragdoll", "--frames", "5", "-o", str(out)]
        assert main(argv) == 0
        result = read_image(out)
        assert result.shape == (130, 200, 4)
        assert (result[..., :3] != 255).any()
        assert "6 renders" in capsys.readouterr().out

    def test_info_overlay(self, tmp_path):
        """Test the info text file is drawn over the image."""
        image = write_rgba(tmp_path / "wall.png", solid(300, 100, (255, 255, 255, 255)))
        info = tmp_path / "wall.txt"
        info.write_text("Oil on canvas")
        out = tmp_path / "info.png"
        argv = ["render", str(image), "-t", "info", "--info", str(info), "-o", str(out)]
        assert main(argv) == 0
        assert read_image(out)[50, 150].tolist() != [255, 255, 255, 255]

    def test_content_size(self, tmp_path):
        """Test --width and --height bound the output."""
        image = write_rgba(tmp_path / "big.png", solid(400, 200))
        out = tmp_path / "small.png"
        assert main(["render", str(image), "--width", "100", "--height", "100", "-o", str(out)]) == 0
        assert read_image(out).shape == (50, 100, 4)

    def test_config_file(self, image_file, tmp_path):
        """Test settings are read from --config."""
        config = tmp_path / "nodefolio.json"
        config.write_text(json.dumps({"viewer": {"content_width": 1}}))
        out = tmp_path / "tiny.png"
        assert main(["-c", str(config), "render", str(image_file), "-o", str(out)]) == 0
        assert read_image(out).shape == (1, 1, 4)

    def test_unknown_tool(self, image_file, tmp_path, capsys):
        """Test an unknown tool kind fails with exit code 2."""
        assert main(["render", str(image_file), "-t", "sepia", "-o", str(tmp_path / "x.png")]) == 2
        assert "Unknown tool" in capsys.readouterr().err

    def test_missing_input(self, tmp_path, capsys):
        """Test a missing input fails with exit code 1."""
        assert main(["render", str(tmp_path / "missing.png")]) == 1
        assert "could not load" in capsys.readouterr().err


class TestOtherCommands:
    """Tests for the remaining subcommands."""

    def test_tools(self, capsys):
        """Test the tool list shows kinds and labels."""
        assert main(["tools"]) == 0
        out = capsys.readouterr().out
        assert "ragdoll" in out
        assert "MEET THE ARTIST" in out
        assert out.splitlines()[0].startswith("info")

    def test_config_example(self, tmp_path):
        """Test writing an example config."""
        path = tmp_path / "example.json"
        assert main(["config", "--example", str(path)]) == 0
        assert json.loads(path.read_text())["slideshow"] == {"interval": 3.0}

    def test_no_command(self, capsys):
        """Test running without a command prints help."""
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_version(self, capsys):
        """Test --version."""
        with pytest.raises(SystemExit):
            main(["--version"])
        assert __version__ in capsys.readouterr().out
