"""Exports unread Pocket items to a JSON file, one page at a time."""

import sys
import json
import fire
from pathlib import Path
from loguru import logger
from pocket_python_api import PocketAPI, SchemaValidationError


VERSION: str = "1.0.0"


class ExportUnread:
    """Fetch every unread item with count/offset paging and dump them to disk."""

    def __init__(self):
        self.pocket = None

    def setup_logging(self, verbose: bool = False):
        """Setup loguru logging with file output and console output based on verbosity."""
        logger.remove()
        logger.add("export_unread.log", level="DEBUG", rotation="10 MB")
        if verbose:
            logger.add(sys.stderr, level="DEBUG")
        else:
            logger.add(sys.stderr, level="INFO")

    def fetch_unread(self, page_size: int) -> dict:
        """Page through unread items until Pocket runs out of them."""
        items = {}
        offset = 0
        while True:
            try:
                page = self.pocket.retrieve(
                    state="unread",
                    sort="oldest",
                    detail_type="complete",
                    count=page_size,
                    offset=offset,
                )
            except SchemaValidationError as e:
                # Pocket answers a page past the end with "list": [] instead of {}
                if e.path == "list" and e.kind == "dict_type":
                    logger.debug(f"Empty page at offset {offset}, stopping.")
                    break
                raise
            for item_id, item in page.list.items():
                items[item_id] = item.model_dump(mode="json", exclude_unset=True)
            logger.info(f"Fetched {len(page.list)} items (total: {len(items)})")
            if len(page.list) < page_size:
                break
            offset += page_size
        return items

    def run(
        self,
        output: str = "pocket_unread.json",
        credentials: str = None,
        page_size: int = 100,
        verbose: bool = False,
    ):
        """
        Export unread items.

        Args:
            output: Path of the JSON file to write
            credentials: Path to a credentials JSON file (defaults to the environment)
            page_size: Number of items requested per call
            verbose: Enable debug output
        """
        self.pocket = PocketAPI(credentials_path=credentials, verbose=verbose)
        # the client resets the handlers, so ours go on afterwards
        self.setup_logging(verbose)

        items = self.fetch_unread(page_size)

        Path(output).write_text(json.dumps(items, indent=2, ensure_ascii=False))
        logger.info(f"Wrote {len(items)} unread items to {output}")


if __name__ == "__main__":
    fire.Fire(ExportUnread().run)
