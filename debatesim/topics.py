"""Read a debate topic from a markdown file with optional YAML front matter."""

from pathlib import Path

import frontmatter


def parse_topic_file(file_path: Path) -> tuple[str, dict]:
    """Parse a topic file.

    Returns:
        (topic, metadata) where topic is the body text and metadata may hold
        ``side`` ("for" or "against"). If no front matter, metadata is {}.
    """
    post = frontmatter.load(str(file_path))
    topic = " ".join(post.content.split())
    metadata = dict(post.metadata)
    return topic, metadata
