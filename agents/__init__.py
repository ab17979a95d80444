# file: agents/__init__.py
from .scout import Scout
from .writer import Writer
from .curator import Curator
from .librarian import Librarian

__all__ = ["Scout", "Writer", "Curator", "Librarian"]
