"""Upload route declarations.

Each route names what may be uploaded through it. Every route currently
accepts a single image of at most 4MB.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from plura.constants import (
    UPLOAD_MAX_FILE_COUNT,
    UPLOAD_MAX_FILE_SIZE_BYTES,
    UPLOAD_ROUTES,
)


@dataclass(frozen=True)
class FileRoute:
    """Limits for one named upload route.

    Attributes:
        name: Route name used in the upload URL
        accepted_types: MIME type prefixes accepted (e.g. "image/")
        max_file_size: Maximum size of one file in bytes
        max_file_count: Maximum number of files per request
    """

    name: str
    accepted_types: Tuple[str, ...] = field(default=("image/",))
    max_file_size: int = UPLOAD_MAX_FILE_SIZE_BYTES
    max_file_count: int = UPLOAD_MAX_FILE_COUNT

    def accepts(self, content_type: Optional[str]) -> bool:
        """Whether a file with this MIME type may use the route."""
        if not content_type:
            return False
        return any(content_type.startswith(prefix) for prefix in self.accepted_types)

    def to_config(self) -> Dict[str, object]:
        """Describe the route for clients building an upload form."""
        return {
            "name": self.name,
            "acceptedTypes": list(self.accepted_types),
            "maxFileSize": f"{self.max_file_size // (1024 * 1024)}MB",
            "maxFileCount": self.max_file_count,
        }


FILE_ROUTES: Dict[str, FileRoute] = {name: FileRoute(name=name) for name in UPLOAD_ROUTES}


def get_file_route(name: str) -> Optional[FileRoute]:
    """Look up a declared route by name."""
    return FILE_ROUTES.get(name)
