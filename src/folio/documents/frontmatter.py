"""Front matter parsing for source documents and layouts."""

import yaml

from folio.documents.models import DocumentError


class FrontMatterError(DocumentError):
    """Raised when a front matter block cannot be parsed."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(f"{path}: {message}" if path else message)


def parse_frontmatter(content: str, path: str | None = None) -> tuple[dict, str]:
    """Split YAML front matter from document content.

    Args:
        content: Full file content that may start with front matter.
        path: Source path used in error messages.

    Returns:
        Tuple of (metadata_dict, body). Content without a front matter
        block returns an empty dict and the original content.

    Raises:
        FrontMatterError: If the block is unterminated, is not valid YAML,
            or does not contain a mapping.
    """
    content = content.replace("\r\n", "\n")
    if content.startswith("\ufeff"):
        content = content[1:]

    if not content.startswith("---\n"):
        return {}, content

    # Find the closing delimiter after the opening "---\n"
    end_pos = content.find("\n---\n", 3)
    if end_pos == -1:
        # Closing delimiter at end of content
        if content.rstrip("\n").endswith("\n---"):
            end_pos = content.rstrip("\n").rfind("\n---")
        else:
            raise FrontMatterError("unterminated front matter block", path)

    yaml_content = content[4:end_pos]

    try:
        metadata = yaml.safe_load(yaml_content) if yaml_content.strip() else {}
    except yaml.YAMLError as e:
        raise FrontMatterError(f"invalid YAML in front matter: {e}", path) from e

    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        raise FrontMatterError("front matter must be a mapping", path)

    remaining_start = end_pos + 5  # len("\n---\n")

    # Skip one blank line if present
    if remaining_start < len(content) and content[remaining_start] == "\n":
        remaining_start += 1

    return metadata, content[remaining_start:]
