import json
import os
from typing import Any, Dict, List

from backend.core.errors import RecordFormatError

GRADES_FILE = "grades.json"


def load_grades(root: str, filename: str = GRADES_FILE) -> List[Dict[str, Any]]:
    """Read the raw grade documents stored under `root`."""
    path = os.path.join(root, filename)
    with open(path, "r", encoding="utf-8") as fh:
        docs = json.load(fh)
    if not isinstance(docs, list):
        raise RecordFormatError(f"{path}: expected a JSON array of grade documents")
    return docs
