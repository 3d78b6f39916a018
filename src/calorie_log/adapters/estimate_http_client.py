"""HTTP client for a remote calorie estimate endpoint."""

from dataclasses import dataclass

import httpx

from calorie_log.errors import EstimatorError
from calorie_log.services.estimate import EstimateRequest, EstimatorClient


@dataclass
class HttpxEstimatorClient(EstimatorClient):
    """Posts estimate requests to an ``/api/estimate`` style endpoint."""

    url: str
    http_client: httpx.AsyncClient

    @classmethod
    def create(cls, url: str) -> "HttpxEstimatorClient":
        """Create an estimator client with a managed httpx session."""
        return cls(url=url, http_client=httpx.AsyncClient())

    async def estimate(self, request: EstimateRequest) -> dict[str, object]:
        """Send the request payload and return the decoded estimate."""
        try:
            response = await self.http_client.post(
                self.url, json=request.to_payload(), timeout=60
            )
        except httpx.HTTPError as exc:
            raise EstimatorError(
                "Failed to reach the estimator.", detail=str(exc)
            ) from exc
        if response.is_error:
            raise EstimatorError(
                f"Estimator error ({response.status_code}).",
                detail=response.text[:400],
            )
        try:
            return response.json()
        except ValueError as exc:
            raise EstimatorError(
                "Estimator returned invalid JSON.", detail=response.text[:400]
            ) from exc

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
