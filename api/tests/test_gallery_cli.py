"""Tests for the gallery command line interface."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from gallery_cli import cmd_browse, cmd_like, cmd_list, parse_args
from gallery_client import Page
from photo_gallery import PhotoGallery
from photo_store import PhotoRecord

PAGE_1 = "https://api.example.com/"
PAGE_2 = "https://api.example.com/?page=2"


def _make_gallery():
    client = MagicMock()
    client.likes_url = "https://api.example.com/likes"
    client.fetch_liked_ids = AsyncMock(return_value=["2"])
    client.set_like = AsyncMock(return_value=None)
    pages = {
        PAGE_1: Page(photos=[PhotoRecord("image#1", None, None, 0)], next_url=PAGE_2),
        PAGE_2: Page(photos=[PhotoRecord("image#2", None, None, 3)], next_url=None),
    }
    client.fetch_page = AsyncMock(side_effect=lambda url: pages[url])
    identity = MagicMock()
    identity.get.return_value = "U1"
    return PhotoGallery(client, identity, PAGE_1), client


class TestParseArgs:
    def test_list_defaults(self):
        args = parse_args(["list"])
        assert args.command == "list"
        assert args.pages == 1
        assert args.verbose is False

    def test_like(self):
        args = parse_args(["like", "image#42"])
        assert args.command == "like"
        assert args.photo_id == "image#42"

    def test_browse_steps(self):
        args = parse_args(["-v", "browse", "--steps", "3"])
        assert args.steps == 3
        assert args.verbose is True

    def test_command_required(self):
        with pytest.raises(SystemExit):
            parse_args([])


class TestCommands:
    @pytest.mark.asyncio
    async def test_list_prints_like_state(self, capsys):
        gallery, _ = _make_gallery()
        assert await cmd_list(gallery, pages=5) == 0
        out = capsys.readouterr().out.splitlines()
        assert len(out) == 2
        assert "image#1" in out[0] and "♡" in out[0]
        assert "image#2" in out[1] and "♥ 3" in out[1]

    @pytest.mark.asyncio
    async def test_like_loads_until_found(self, capsys):
        gallery, client = _make_gallery()
        assert await cmd_like(gallery, "image#2") == 0
        client.set_like.assert_called_once_with("U1", "image#2", False)
        assert "♡ 2" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_like_unknown_photo(self, capsys):
        gallery, _ = _make_gallery()
        assert await cmd_like(gallery, "image#404") == 1
        assert "not found" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_browse_wraps(self, capsys):
        gallery, _ = _make_gallery()
        assert await cmd_browse(gallery, steps=3) == 0
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[0] for line in lines] == ["image#1", "image#2", "image#1", "image#2"]
