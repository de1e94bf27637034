"""
Index creation options.
"""
from datetime import timedelta
from typing import Any, Dict, Optional

from pydantic import BaseModel


class IndexCreationOptions(BaseModel):
    """
    Options for creating an index, passed through to the driver.

    Only options that are set are sent; the server applies its defaults for
    the rest.
    """

    unique: Optional[bool] = None
    sparse: Optional[bool] = None
    name: Optional[str] = None
    expire_after: Optional[timedelta] = None
    background: Optional[bool] = None
    version: Optional[int] = None

    # geospatial
    min: Optional[float] = None
    max: Optional[float] = None
    bits: Optional[int] = None
    sphere_index_version: Optional[int] = None

    # text
    text_index_version: Optional[int] = None
    default_language: Optional[str] = None
    language_override: Optional[str] = None

    def to_index_kwargs(self) -> Dict[str, Any]:
        """Map the options to ``create_index`` keyword arguments."""
        mapping = {
            "unique": self.unique,
            "sparse": self.sparse,
            "name": self.name,
            "background": self.background,
            "v": self.version,
            "min": self.min,
            "max": self.max,
            "bits": self.bits,
            "2dsphereIndexVersion": self.sphere_index_version,
            "textIndexVersion": self.text_index_version,
            "default_language": self.default_language,
            "language_override": self.language_override,
        }
        if self.expire_after is not None:
            mapping["expireAfterSeconds"] = int(self.expire_after.total_seconds())
        return {key: value for key, value in mapping.items() if value is not None}


def index_kwargs(options: Optional[IndexCreationOptions]) -> Dict[str, Any]:
    """Keyword arguments for ``create_index``; no options means none."""
    if options is None:
        return {}
    return options.to_index_kwargs()
