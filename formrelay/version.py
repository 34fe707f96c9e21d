"""
Version information for formrelay
"""
from importlib import metadata
from pathlib import Path
import tomllib


def get_version() -> str:
    """pyproject.toml からバージョンを取得

    Returns:
        バージョン文字列
    """
    pyproject_path = Path(__file__).parent.parent / "pyproject.toml"
    try:
        with open(pyproject_path, "rb") as f:
            data = tomllib.load(f)
        return data["project"]["version"]
    except (OSError, tomllib.TOMLDecodeError, KeyError):
        pass

    try:
        return metadata.version("formrelay")
    except metadata.PackageNotFoundError:
        return "unknown"


__version__ = get_version()
