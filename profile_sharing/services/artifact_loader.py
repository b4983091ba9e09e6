"""
Load compiled contract artifacts from the build output
"""
import json
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from profile_sharing.core.errors import ArtifactError
from profile_sharing.core.logging_config import LoggingConfig
from profile_sharing.models.contract import ContractArtifact

logger = LoggingConfig.get_logger(__name__)


def parse_artifact(data: Dict[str, Any], source: str = "<memory>") -> ContractArtifact:
    """
    Validate an artifact already decoded from JSON.

    Raises:
        ArtifactError: required keys are missing or malformed
    """
    try:
        artifact = ContractArtifact.model_validate(data)
    except ValidationError as e:
        raise ArtifactError(
            f"Contract artifact {source} is invalid: {e.error_count()} problem(s), first: {e.errors()[0]['msg']}",
            operation="load_artifact",
            metadata={"source": source}
        ) from e
    logger.debug(f"Loaded artifact {artifact.name} with {len(artifact.functions)} function(s) from {source}")
    return artifact


def load_contract_artifact(path: Union[str, Path]) -> ContractArtifact:
    """
    Read and validate a compiled artifact file.

    Raises:
        ArtifactError: the file is absent, unreadable or not a valid artifact
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ArtifactError(
            f"Contract artifact not found at {path}. Compile the contract first",
            operation="load_artifact",
            metadata={"source": str(path)}
        ) from e
    except OSError as e:
        raise ArtifactError(f"Cannot read contract artifact {path}: {e}", operation="load_artifact") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ArtifactError(
            f"Contract artifact {path} is not valid JSON: {e.msg} (line {e.lineno})",
            operation="load_artifact",
            metadata={"source": str(path)}
        ) from e
    if not isinstance(data, dict):
        raise ArtifactError(f"Contract artifact {path} must be a JSON object", operation="load_artifact")

    return parse_artifact(data, source=str(path))
