"""
Model provisioning

Makes sure a local model is present on the model runtime before it is
benchmarked. Uses the Docker Model Runner management API: GET /models lists
the pulled models, POST /models/create pulls one.
"""

import logging
from abc import ABC, abstractmethod

import httpx

from llm_bench.domain.errors import ProvisioningError

logger = logging.getLogger(__name__)


class ModelProvisioner(ABC):
    """Ensures a model can be served before the first request"""

    @abstractmethod
    def ensure_available(self, model_name: str) -> None:
        """
        Raises:
            ProvisioningError: If the model cannot be made available
        """
        pass


class NoopProvisioner(ModelProvisioner):
    """For runtimes managed outside the harness (LM Studio, llama.cpp server)"""

    def ensure_available(self, model_name: str) -> None:
        logger.debug("Skipping provisioning for %s", model_name)


class DockerModelRunnerProvisioner(ModelProvisioner):
    """Pulls missing models through the Docker Model Runner management API"""

    def __init__(self, management_url: str, pull_timeout_seconds: float = 1800):
        self.management_url = management_url.rstrip("/")
        self.pull_timeout_seconds = pull_timeout_seconds

    def list_models(self) -> set[str]:
        """Return every tag known to the runtime"""
        with httpx.Client(timeout=30) as client:
            resp = client.get(f"{self.management_url}/models")
        resp.raise_for_status()
        tags: set[str] = set()
        for entry in resp.json() or []:
            tags.update(entry.get("tags") or [])
        return tags

    def ensure_available(self, model_name: str) -> None:
        try:
            if model_name in self.list_models():
                logger.info("Model already available", extra={"model": model_name})
                return

            print(f"  Pulling {model_name}...", flush=True)
            with httpx.Client(timeout=self.pull_timeout_seconds) as client:
                resp = client.post(f"{self.management_url}/models/create", json={"from": model_name})
            if resp.status_code >= 400:
                raise ProvisioningError(
                    f"Failed to pull model {model_name}: HTTP {resp.status_code} {resp.text[:200]}"
                )
            logger.info("Model pulled", extra={"model": model_name})
        except httpx.HTTPError as e:
            raise ProvisioningError(f"Failed to pull model {model_name}: {e}") from e
