import re

_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")
_CODE_RE = re.compile(r"`([^`]+)`")


def split_lines(text: str) -> list[str]:
    """Split text into lines, accepting \\n, \\r\\n and bare \\r breaks.

    Args:
        text: Raw document text.

    Returns:
        list[str]: Lines without their terminators.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text.split("\n")


def strip_inline_markdown(text: str) -> str:
    """Remove **bold**, *italic* and `code` delimiters, keeping the inner text.

    Bold is handled before italic so ``**x**`` doesn't leave stray asterisks.

    Args:
        text: A single line of markdown.

    Returns:
        str: Text with the emphasis/code markers removed.
    """
    text = _BOLD_RE.sub(r"\1", text)
    text = _ITALIC_RE.sub(r"\1", text)
    return _CODE_RE.sub(r"\1", text)
