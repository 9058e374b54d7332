"""Post slugs, which double as generated directory and file names"""

import re


def slugify(text: str, fallback: str = "untitled") -> str:
    """Lowercase, hyphen-separated slug safe to use as a directory name."""
    text = text.lower()
    text = re.sub(r'[^\w\s-]', '', text)
    text = re.sub(r'[\s_]+', '-', text)
    return re.sub(r'-+', '-', text).strip('-') or fallback
