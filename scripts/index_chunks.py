#!/usr/bin/env python3
"""Standalone chunking script - chunks a workspace, writes JSON lines and exits."""

import json
import logging
import os
import sys

# Setup logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Main chunking function."""
    from codechunker.errors import ChunkerError
    from codechunker.indexer.chunker import CodeChunker
    from codechunker.settings import get_env_config

    config = get_env_config()
    workspace_path = config["workspace_path"]

    logger.info(f"Starting chunker for workspace: {workspace_path}")
    logger.info(f"Language: {config['language']}")
    logger.info(f"Include tests: {config['include_tests']}")

    chunker = CodeChunker(
        include_tests=config["include_tests"],
        follow_gitignore=config["follow_gitignore"],
    )

    try:
        chunks = chunker.chunk_paths(
            [workspace_path],
            config["language"],
            route_files=config["route_files"] or None,
        )
    except ChunkerError as e:
        logger.error(f"Chunking failed: {e}")
        return 1

    output_path = config["output_path"]
    if output_path:
        with open(output_path, "w", encoding="utf-8") as f:
            for chunk in chunks:
                f.write(json.dumps(chunk.to_dict()) + "\n")
        logger.info(f"Wrote {len(chunks)} chunks to {output_path}")
    else:
        for chunk in chunks:
            sys.stdout.write(json.dumps(chunk.to_dict()) + "\n")

    logger.info("Chunking complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
