"""
Loading and validating the YAML manifests a deploy applies.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

import yaml

from kubeship.errors import ConfigurationError, InvalidManifestError

MANIFEST_SUFFIXES = (".yaml", ".yml")


@dataclass(frozen=True)
class Manifest:
    """A single Kubernetes resource document and the file it came from."""

    kind: str
    name: str
    api_version: str
    namespace: Optional[str]
    source: Path
    document: Dict

    @property
    def id(self) -> str:
        return f"{self.kind}/{self.name}"


def find_manifest_files(paths: Iterable[Union[str, Path]]) -> List[Path]:
    """
    Collect manifest files from files and directories.

    Directories are searched recursively for .yaml and .yml files.

    Raises:
        ConfigurationError: If a path does not exist or no manifests are found
    """
    files: List[Path] = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.exists():
            raise ConfigurationError(f"Manifest path not found: {path}")
        if path.is_dir():
            found = [p for p in path.rglob("*") if p.is_file() and p.suffix in MANIFEST_SUFFIXES]
            files.extend(sorted(found))
        else:
            files.append(path)

    if not files:
        raise ConfigurationError(
            "No manifest files found in " + ", ".join(str(p) for p in paths)
        )
    return files


def _load_documents(yaml_file: Path) -> List[Dict]:
    try:
        with open(yaml_file, "r") as f:
            documents = list(yaml.safe_load_all(f))
    except yaml.YAMLError as e:
        raise InvalidManifestError(f"invalid YAML: {e}", filename=str(yaml_file)) from e
    except (IOError, OSError) as e:
        raise InvalidManifestError(f"could not be read: {e}", filename=str(yaml_file)) from e
    return [doc for doc in documents if doc is not None]


def _expand_lists(documents: List[Dict]) -> List[Dict]:
    # `kind: List` wraps other resources in its items
    expanded: List[Dict] = []
    for doc in documents:
        if isinstance(doc, dict) and doc.get("kind") == "List":
            expanded.extend(item for item in doc.get("items") or [] if item is not None)
        else:
            expanded.append(doc)
    return expanded


def load_manifests(files: Iterable[Path]) -> List[Manifest]:
    """
    Parse every resource document in the given files.

    Raises:
        InvalidManifestError: If a file is not valid YAML or a document is
            missing kind, apiVersion or metadata.name
    """
    manifests: List[Manifest] = []
    for yaml_file in files:
        for doc in _expand_lists(_load_documents(yaml_file)):
            if not isinstance(doc, dict):
                raise InvalidManifestError("document is not a mapping", filename=str(yaml_file))

            kind = doc.get("kind")
            api_version = doc.get("apiVersion")
            metadata = doc.get("metadata")
            if not kind or not api_version:
                raise InvalidManifestError(
                    "document is missing kind or apiVersion", filename=str(yaml_file)
                )
            if not isinstance(metadata, dict) or not metadata.get("name"):
                raise InvalidManifestError(
                    f"{kind} document is missing metadata.name", filename=str(yaml_file)
                )

            manifests.append(
                Manifest(
                    kind=kind,
                    name=metadata["name"],
                    api_version=api_version,
                    namespace=metadata.get("namespace"),
                    source=yaml_file,
                    document=doc,
                )
            )
    return manifests
