"""Model registry for loading and caching whale-call classifiers.

Classifiers are TorchScript modules that map a ``[1, 1, n_mels, n_frames]``
spectrogram batch to a call probability. Loaded models are cached per file
and device to avoid redundant loading on repeated calls.

Example:
    >>> from detector.registry import get_model
    >>> classifier = get_model("models/stg2-rn18.pt", device="cpu")
    >>> classifier.predict(features)
    0.87
"""

import logging
import threading
from pathlib import Path

import torch

from .errors import InferenceError, ModelLoadError
from .types import WhalecallClassifier


logger = logging.getLogger(__name__)


class TorchScriptWhalecallModel:
    """TorchScript whale-call classifier wrapper.

    Attributes:
        name: Model identifier (file name of the module).
        model_path: Location of the serialized module.
    """

    def __init__(self, model_path: str | Path, device: str = "cpu") -> None:
        """Load the module.

        Args:
            model_path: Path to a ``torch.jit.save``d module.
            device: Device to run inference on ("cpu" or "cuda").

        Raises:
            ModelLoadError: If the file is missing or cannot be loaded.
        """
        self.model_path = Path(model_path)
        self._device = device
        self._module = self._load_model()

    def _load_model(self) -> torch.jit.ScriptModule:
        if not self.model_path.is_file():
            raise ModelLoadError(
                message=f"Model file not found: {self.model_path}",
                code="MODEL_NOT_FOUND",
                details={"model_path": str(self.model_path)},
            )
        try:
            module = torch.jit.load(str(self.model_path), map_location=self._device)
        except Exception as e:
            raise ModelLoadError(
                message=f"Failed to load TorchScript model: {e}",
                code="LOAD_FAILED",
                details={"model_path": str(self.model_path), "error": str(e)},
            ) from e
        module.eval()
        logger.info("Loaded classifier %s on %s", self.model_path.name, self._device)
        return module

    @property
    def name(self) -> str:
        """Return the model name/identifier."""
        return self.model_path.name

    def predict(self, features: torch.Tensor) -> float:
        """Score one spectrogram window.

        Args:
            features: Tensor with shape [n_mels, n_frames].

        Returns:
            First output element clamped to [0, 1].

        Raises:
            InferenceError: If the input is malformed or the forward pass fails.
        """
        if features.dim() != 2:
            raise InferenceError(
                message=f"Features must have shape [n_mels, n_frames], got {list(features.shape)}",
                code="INVALID_INPUT",
                details={"shape": list(features.shape)},
            )

        batch = features.to(self._device, dtype=torch.float32).unsqueeze(0).unsqueeze(0)
        try:
            with torch.inference_mode():
                output = self._module(batch)
        except Exception as e:
            raise InferenceError(
                message=f"Inference failed: {e}",
                code="INFERENCE_FAILED",
                details={"error": str(e)},
            ) from e

        if isinstance(output, (tuple, list)):
            output = output[0]
        values = torch.as_tensor(output).detach().flatten()
        if values.numel() == 0:
            raise InferenceError(
                message="Classifier returned an empty output",
                code="EMPTY_OUTPUT",
            )
        return min(1.0, max(0.0, float(values[0].item())))


# Thread-safe model cache
_model_cache: dict[str, WhalecallClassifier] = {}
_cache_lock = threading.Lock()


def get_model(model_path: str | Path, device: str = "cpu") -> WhalecallClassifier:
    """Get or create a cached classifier instance.

    Args:
        model_path: Path to the TorchScript module.
        device: Device to run the model on ("cpu" or "cuda").

    Returns:
        A loaded classifier implementing WhalecallClassifier.

    Raises:
        ModelLoadError: If loading fails.
    """
    cache_key = f"{Path(model_path).resolve()}:{device}"

    with _cache_lock:
        if cache_key in _model_cache:
            return _model_cache[cache_key]

        model = TorchScriptWhalecallModel(model_path, device=device)
        _model_cache[cache_key] = model
        return model


def clear_cache() -> None:
    """Clear the model cache.

    Useful for testing or when switching between models.
    """
    with _cache_lock:
        _model_cache.clear()
