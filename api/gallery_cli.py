"""Command line front end for the gallery feed.

Usage:
    python gallery_cli.py list [--pages N]
    python gallery_cli.py like PHOTO_ID
    python gallery_cli.py browse [--steps N]

Endpoints are read from the environment (see config.GalleryConfig), with a
.env file loaded first.
"""

from dotenv import load_dotenv
load_dotenv()

import argparse
import asyncio
import logging
import sys

from config import GalleryConfig
from photo_gallery import PhotoGallery


def parse_args(args: list[str] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Args:
        args: List of arguments to parse. If None, uses sys.argv.
    """
    parser = argparse.ArgumentParser(description="Browse and like photos in a gallery")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List photos with their like state")
    list_cmd.add_argument("--pages", type=int, default=1, help="Pages to load (default: 1)")

    like_cmd = sub.add_parser("like", help="Toggle the like on a photo")
    like_cmd.add_argument("photo_id", help="Photo id, e.g. image#42")

    browse_cmd = sub.add_parser("browse", help="Step through the lightbox")
    browse_cmd.add_argument("--steps", type=int, default=10, help="Number of next() steps")

    return parser.parse_args(args)


def format_photo(gallery: PhotoGallery, index: int) -> str:
    photo = gallery.store[index]
    heart = "♥" if gallery.is_liked(photo.id) else "♡"
    return f"{index:4d}  {photo.id:<20} {heart} {photo.likes}"


async def cmd_list(gallery: PhotoGallery, pages: int) -> int:
    for _ in range(pages):
        if not gallery.has_more:
            break
        await gallery.load_more()
    for i in range(len(gallery.store)):
        print(format_photo(gallery, i))
    if gallery.tracker.last_error is not None:
        print(f"Stopped early: {gallery.tracker.last_error}", file=sys.stderr)
        return 1
    return 0


async def cmd_like(gallery: PhotoGallery, photo_id: str) -> int:
    while photo_id not in gallery.store and gallery.has_more:
        if not await gallery.load_more() and gallery.tracker.last_error is not None:
            break
    if photo_id not in gallery.store:
        print(f"Photo {photo_id} not found", file=sys.stderr)
        return 1
    ok = await gallery.toggle_like(photo_id)
    print(format_photo(gallery, gallery.store.index_of(photo_id)))
    return 0 if ok else 1


async def cmd_browse(gallery: PhotoGallery, steps: int) -> int:
    await gallery.load_more()
    if not len(gallery.store):
        print("Gallery is empty", file=sys.stderr)
        return 1
    gallery.lightbox.open(0)
    print(gallery.lightbox.current.id)
    for _ in range(steps):
        result = await gallery.lightbox.next()
        print(f"{gallery.lightbox.current.id}  ({result.value})")
    return 0


async def run(args: argparse.Namespace, config: GalleryConfig) -> int:
    gallery = PhotoGallery.from_config(config)
    try:
        await gallery.start()
        if args.command == "list":
            return await cmd_list(gallery, args.pages)
        if args.command == "like":
            return await cmd_like(gallery, args.photo_id)
        return await cmd_browse(gallery, args.steps)
    finally:
        gallery.close()


def main(argv: list[str] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = GalleryConfig.from_env()
    if not config.initial_url:
        print("Set GALLERY_URL (or GALLERY_BOOTSTRAP_URL)", file=sys.stderr)
        return 2
    return asyncio.run(run(args, config))


if __name__ == "__main__":
    sys.exit(main())
