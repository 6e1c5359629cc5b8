import os

from dotenv import load_dotenv

from algolite.repositories.index_registry import IndexRegistry

load_dotenv()

DEFAULT_HOST = os.getenv("ALGOLITE_HOST", "127.0.0.1")
DEFAULT_PORT = int(os.getenv("ALGOLITE_PORT", "9200"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Singleton instance
__index_registry = None


def get_index_registry() -> IndexRegistry:
    """Registry rooted at ALGOLITE_PATH, or the working directory"""
    global __index_registry
    if __index_registry is None:
        __index_registry = IndexRegistry(path=os.getenv("ALGOLITE_PATH", os.getcwd()))
    return __index_registry
