"""Script to delete every stored vector of one video.

Use it to remove a video from the index entirely; re-ingesting a video does
not need it because records are overwritten in place.

Usage:
    python -m scripts.clear_video <video-url-or-id>
"""

import asyncio
import sys

from src.video_rag.config import get_config
from src.video_rag.storage_service import StorageService
from src.video_rag.transcript_service import extract_video_id


async def clear_video(url: str) -> None:
    """Delete all records of the video referenced by url."""
    video_id = extract_video_id(url)
    storage = StorageService(get_config())

    confirm = input(f"Delete all stored vectors for video {video_id}? Type 'yes' to continue: ")
    if confirm.lower() != "yes":
        print("Aborted")
        return

    await storage.delete_video(video_id)
    print(f"Deleted stored vectors for {video_id}")


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(clear_video(sys.argv[1]))
