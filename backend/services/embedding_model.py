"""Embedding model integration with Hugging Face Inference API."""
import time
import logging
from typing import List, Optional
import httpx
from config import HUGGINGFACE_API_KEY, EMBEDDING_MODEL, EMBEDDING_TIMEOUT
from services.errors import EmbeddingError

logger = logging.getLogger(__name__)


class EmbeddingModel:
    """Wrapper for Hugging Face Inference API feature extraction."""

    def __init__(
        self,
        api_key: Optional[str] = HUGGINGFACE_API_KEY,
        model_name: str = EMBEDDING_MODEL,
        max_retries: int = 5,
        initial_delay: float = 5.0,
        timeout: float = EMBEDDING_TIMEOUT
    ):
        """
        Initialize the embedding model client.

        Args:
            api_key: Hugging Face API key
            model_name: Model identifier (default: sentence-transformers/all-mpnet-base-v2)
            max_retries: Maximum number of attempts for 503s, timeouts and network errors
            initial_delay: Initial delay in seconds for exponential backoff
            timeout: Request timeout in seconds
        """
        if not api_key:
            raise ValueError("HUGGINGFACE_API_KEY environment variable is required")

        self.api_key = api_key
        self.model_name = model_name
        self.max_retries = max_retries
        self.initial_delay = initial_delay
        self.timeout = timeout
        self.dimension: Optional[int] = None
        self.api_url = f"https://router.huggingface.co/hf-inference/models/{model_name}/pipeline/feature-extraction"

        logger.info(f"Initialized EmbeddingModel with model: {model_name}")

    def embed_text(self, text: str) -> List[float]:
        """
        Embed a single text.

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the API request fails after all retries
        """
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        return self._embed_with_retry([text])[0]

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        """
        Embed several texts in one API call.

        Empty strings are rejected so that results stay aligned with their inputs.

        Raises:
            ValueError: If the list is empty or contains empty strings
            EmbeddingError: If the API request fails after all retries
        """
        if not texts:
            raise ValueError("Texts list cannot be empty")

        if any(not t or not t.strip() for t in texts):
            raise ValueError("Texts in a batch cannot be empty")

        return self._embed_with_retry(texts)

    def _embed_with_retry(self, texts: List[str]) -> List[List[float]]:
        """
        Call the HF API with exponential backoff.

        Free tier models "sleep" and answer 503 while loading, so 503s, timeouts and
        network errors are retried. Rate limits, auth failures and other statuses are not.
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        payload = {
            "inputs": texts,
            "options": {
                "wait_for_model": True
            }
        }

        delay = self.initial_delay
        last_error = None

        for attempt in range(self.max_retries):
            try:
                start_time = time.time()

                with httpx.Client(timeout=self.timeout) as client:
                    response = client.post(
                        self.api_url,
                        headers=headers,
                        json=payload
                    )

                elapsed = time.time() - start_time

                if response.status_code == 503:
                    logger.warning(
                        f"Model loading (503) on attempt {attempt + 1}/{self.max_retries}. "
                        f"Retrying in {delay}s..."
                    )
                    last_error = "Model is still loading (503)"
                    if attempt < self.max_retries - 1:
                        time.sleep(delay)
                        delay = min(delay * 2, 60.0)
                    continue

                if response.status_code == 429:
                    logger.error("Rate limit exceeded for Hugging Face API")
                    raise EmbeddingError("Embedding rate limit exceeded. Please try again later.")

                if response.status_code == 401:
                    logger.error("Authentication failed for Hugging Face API")
                    raise EmbeddingError("Invalid Hugging Face API key")

                if response.status_code != 200:
                    error_msg = f"Embedding request failed with status {response.status_code}: {response.text}"
                    logger.error(error_msg)
                    raise EmbeddingError(error_msg)

                embeddings = self._validate(response.json(), len(texts))

                if elapsed > 10.0:
                    logger.info(
                        f"Model loading delay detected: {elapsed:.1f}s for {len(texts)} texts "
                        f"(attempt {attempt + 1})"
                    )
                else:
                    logger.debug(f"Generated embeddings for {len(texts)} texts in {elapsed:.2f}s")

                return embeddings

            except httpx.TimeoutException as e:
                last_error = f"Request timeout after {self.timeout}s"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")
                if attempt < self.max_retries - 1:
                    time.sleep(delay)
                    delay = min(delay * 2, 60.0)

            except httpx.RequestError as e:
                last_error = f"Network error: {str(e)}"
                logger.error(f"{last_error} on attempt {attempt + 1}/{self.max_retries}")
                if attempt < self.max_retries - 1:
                    time.sleep(delay)
                    delay = min(delay * 2, 60.0)

        error_msg = f"Failed to generate embeddings after {self.max_retries} attempts. Last error: {last_error}"
        logger.error(error_msg)
        raise EmbeddingError(error_msg)

    def _validate(self, data, expected: int) -> List[List[float]]:
        """Check shape and dimension of an API result."""
        if not isinstance(data, list) or len(data) != expected:
            raise EmbeddingError(f"Malformed embedding response: expected {expected} vectors")

        dimension = self.dimension
        for vector in data:
            if not isinstance(vector, list) or not vector:
                raise EmbeddingError("Malformed embedding response: vector is not a list of floats")
            if dimension is None:
                dimension = len(vector)
            elif len(vector) != dimension:
                raise EmbeddingError(
                    f"Embedding dimension mismatch: got {len(vector)}, expected {dimension}"
                )

        self.dimension = dimension
        return data

    def warmup(self) -> bool:
        """
        Send a dummy query so the hosted model is loaded before real traffic.

        Returns:
            True if warmup successful, False otherwise
        """
        try:
            logger.info("Warming up embedding model...")
            start_time = time.time()
            self.embed_text("warmup query")
            logger.info(f"Model warmup completed in {time.time() - start_time:.1f}s")
            return True
        except EmbeddingError as e:
            logger.error(f"Model warmup failed: {e.message}")
            return False
