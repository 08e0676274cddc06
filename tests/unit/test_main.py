# tests/unit/test_main.py
"""Tests for main.py: CLI entry point."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from imageproxy.config.settings import Settings
from imageproxy.core.errors import FetchFailed, InvalidParameter
from imageproxy.main import _build_parser, _query_from_args, main


# ---------------------------------------------------------------------------
# Parser tests
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_version_flag(self):
        parser = _build_parser()
        with pytest.raises(SystemExit) as exc_info:
            parser.parse_args(["--version"])
        assert exc_info.value.code == 0

    def test_serve_subcommand(self):
        args = _build_parser().parse_args(["serve", "--port", "9000"])
        assert args.command == "serve"
        assert args.port == 9000
        assert args.host is None

    def test_transform_subcommand(self):
        args = _build_parser().parse_args(
            ["transform", "https://x/a.jpg", "--width", "10", "-o", "/tmp/out.jpg"]
        )
        assert args.command == "transform"
        assert args.img == "https://x/a.jpg"
        assert args.width == "10"
        assert args.output == Path("/tmp/out.jpg")

    def test_transform_requires_output(self):
        with pytest.raises(SystemExit):
            _build_parser().parse_args(["transform", "https://x/a.jpg"])

    def test_query_from_args(self):
        args = _build_parser().parse_args(
            ["address", "https://x/a.jpg", "--mode", "crop", "--format", "png"]
        )
        assert _query_from_args(args) == {
            "img": "https://x/a.jpg",
            "width": "",
            "height": "",
            "ratio": "",
            "mode": "crop",
            "format": "png",
            "quality": "",
        }


# ---------------------------------------------------------------------------
# Command tests
# ---------------------------------------------------------------------------

class TestMain:
    def test_no_command(self):
        assert main([]) == 1

    def test_address(self, capsys):
        code = main([
            "address", "https://x/y/photo.jpg",
            "--width", "100", "--height", "100", "--mode", "crop", "--format", "png",
        ])
        assert code == 0
        out = capsys.readouterr().out.strip()
        assert out == "https%3A%2F%2Fx%2Fy%2Fphoto.jpg/crop/100/100/0/100/photo.png"

    def test_address_invalid(self, capsys):
        assert main(["address", "https://x/y/photo.jpg", "--width", "wide"]) == 2
        assert "width" in capsys.readouterr().err

    def test_transform_writes_file(self, tmp_path, capsys):
        result = MagicMock(
            is_redirect=False, body=b"bytes", cache_status="MISS", address="a/b/photo.jpg"
        )
        orchestrator = MagicMock()
        orchestrator.handle = AsyncMock(return_value=result)
        output = tmp_path / "out" / "photo.jpg"

        with patch("imageproxy.main._load", return_value=Settings(_env_file=None)), patch(
            "imageproxy.api.app.build_orchestrator", return_value=orchestrator
        ):
            code = main(["transform", "https://x/photo.jpg", "-o", str(output)])

        assert code == 0
        assert output.read_bytes() == b"bytes"
        assert "MISS a/b/photo.jpg" in capsys.readouterr().out

    @pytest.mark.parametrize(
        ("error", "expected"),
        [(InvalidParameter("quality"), 2), (FetchFailed(404), 1)],
    )
    def test_transform_errors(self, tmp_path, error, expected):
        orchestrator = MagicMock()
        orchestrator.handle = AsyncMock(side_effect=error)
        with patch("imageproxy.main._load", return_value=Settings(_env_file=None)), patch(
            "imageproxy.api.app.build_orchestrator", return_value=orchestrator
        ):
            code = main(["transform", "https://x/photo.jpg", "-o", str(tmp_path / "o.jpg")])
        assert code == expected
