"""
Feed-Forward Scorer
-------------------
One hidden tanh layer and a softmax over [down, neutral, up], with
Xavier-range uniform initialization drawn from an injected generator.

Training is delegated to a Trainer so the learning rule can change without
touching predict():

    WeightNudgeTrainer - illustrative nudging of the output layer only
    GradientTrainer    - full-batch softmax cross-entropy backpropagation
"""
import logging
import math
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import numpy as np

from quant_core.errors import InvalidParameterError, enforce_positive, enforce_positive_period
from quant_core.prediction.models import Direction, ModelOutput

logger = logging.getLogger(__name__)

DOWN, NEUTRAL, UP = 0, 1, 2
LOG_CLASSES = math.log(3)
EPSILON = 1e-15


def softmax(logits: np.ndarray) -> np.ndarray:
    shifted = np.exp(logits - logits.max(axis=-1, keepdims=True))
    return shifted / shifted.sum(axis=-1, keepdims=True)


def cross_entropy(probabilities: np.ndarray, targets: np.ndarray) -> float:
    return float(-np.mean(np.sum(targets * np.log(np.maximum(probabilities, EPSILON)), axis=-1)))


class FeedForwardScorer:
    def __init__(self, input_size: int = 60, hidden_size: int = 100, output_size: int = 3,
                 rng: Optional[np.random.Generator] = None):
        enforce_positive_period("input_size", input_size)
        enforce_positive_period("hidden_size", hidden_size)
        rng = rng if rng is not None else np.random.default_rng()

        self.input_size = input_size
        self.hidden_size = hidden_size
        self.output_size = output_size

        hidden_limit = math.sqrt(6 / (input_size + hidden_size))
        output_limit = math.sqrt(6 / (hidden_size + output_size))
        self.weights_hidden = rng.uniform(-hidden_limit, hidden_limit, (hidden_size, input_size))
        self.bias_hidden = np.zeros(hidden_size)
        self.weights_output = rng.uniform(-output_limit, output_limit, (output_size, hidden_size))
        self.bias_output = np.zeros(output_size)

    def forward(self, inputs: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Hidden activations and class probabilities; accepts one sample or a batch."""
        hidden = np.tanh(inputs @ self.weights_hidden.T + self.bias_hidden)
        return hidden, softmax(hidden @ self.weights_output.T + self.bias_output)

    def predict(self, features: Sequence[float]) -> ModelOutput:
        x = np.asarray(features, dtype=float)
        if x.shape != (self.input_size,):
            raise InvalidParameterError(f"Expected {self.input_size} features, got {x.shape}")

        _, probs = self.forward(x)
        down, neutral, up = probs

        # Up or down only when strictly the most likely class
        if up > down and up > neutral:
            direction, probability = Direction.UP, up
        elif down > up and down > neutral:
            direction, probability = Direction.DOWN, down
        else:
            direction, probability = Direction.NEUTRAL, neutral

        entropy = -float(np.sum(np.where(probs > 0, probs * np.log(np.maximum(probs, EPSILON)), 0.0)))
        return ModelOutput(
            direction=direction,
            probability=float(probability),
            confidence=1 - entropy / LOG_CLASSES,
            probabilities=probs,
        )

    def train(self, samples: Sequence[Tuple[Sequence[float], Sequence[float]]],
              trainer: Optional['Trainer'] = None) -> List[float]:
        """Fits on (features, one-hot target) pairs; returns the mean loss per epoch."""
        if not samples:
            return []
        features = np.array([s[0] for s in samples], dtype=float)
        targets = np.array([s[1] for s in samples], dtype=float)
        return (trainer or WeightNudgeTrainer()).fit(self, features, targets)


class Trainer(ABC):
    def __init__(self, learning_rate: float, epochs: int):
        enforce_positive("learning_rate", learning_rate)
        enforce_positive_period("epochs", epochs)
        self.learning_rate = learning_rate
        self.epochs = epochs

    @abstractmethod
    def fit(self, model: FeedForwardScorer, features: np.ndarray, targets: np.ndarray) -> List[float]:
        pass


class WeightNudgeTrainer(Trainer):
    """
    Per-sample random nudges of the output layer toward the target error.
    Not gradient descent; kept as the lightweight default.
    """

    def __init__(self, learning_rate: float = 0.001, epochs: int = 100,
                 rng: Optional[np.random.Generator] = None):
        super().__init__(learning_rate, epochs)
        self.rng = rng if rng is not None else np.random.default_rng()

    def fit(self, model, features, targets):
        factor = self.learning_rate * 0.1
        losses = []
        for epoch in range(self.epochs):
            total = 0.0
            for x, target in zip(features, targets):
                _, probs = model.forward(x)
                total += cross_entropy(probs, target)
                error = target - probs
                jitter = self.rng.random(model.weights_output.shape) * 0.01
                model.weights_output += factor * error[:, None] * jitter
                model.bias_output += factor * error * 0.01
            losses.append(total / len(features))
            if epoch % 20 == 0:
                logger.debug(f"Epoch {epoch}, loss {losses[-1]:.4f}")
        return losses


class GradientTrainer(Trainer):
    """Full-batch gradient descent on softmax cross-entropy through both layers."""

    def __init__(self, learning_rate: float = 0.05, epochs: int = 200):
        super().__init__(learning_rate, epochs)

    def fit(self, model, features, targets):
        n = len(features)
        losses = []
        for epoch in range(self.epochs):
            hidden, probs = model.forward(features)
            losses.append(cross_entropy(probs, targets))

            d_logits = (probs - targets) / n
            d_hidden = (d_logits @ model.weights_output) * (1 - hidden ** 2)

            model.weights_output -= self.learning_rate * d_logits.T @ hidden
            model.bias_output -= self.learning_rate * d_logits.sum(axis=0)
            model.weights_hidden -= self.learning_rate * d_hidden.T @ features
            model.bias_hidden -= self.learning_rate * d_hidden.sum(axis=0)

            if epoch % 20 == 0:
                logger.debug(f"Epoch {epoch}, loss {losses[-1]:.4f}")
        return losses
