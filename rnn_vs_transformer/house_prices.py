"""
House Prices: Where Every Neural Network Starts

Before words, hidden states or attention, there is this:

    price = w_size * size + w_bedrooms * bedrooms + w_age * age + bias

A prediction is a weighted sum of inputs plus a bias, and learning means
nudging the weights downhill on the error. Everything later in the package,
including the Q/K/V projections inside attention, is this same ``Linear``
layer used many times over.

Functions:
    make_house_dataset: Synthetic houses priced by a known linear rule
    mean_squared_error: Average squared prediction error
    mean_squared_error_backward: Gradient of the MSE w.r.t. predictions

Classes:
    FeatureScaler: Column-wise standardization
    HousePriceModel: Linear regression trained with gradient descent
    Neuron: A weighted sum followed by an activation
"""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from rnn_vs_transformer.activations import get_activation
from rnn_vs_transformer.config import HousePriceConfig
from rnn_vs_transformer.layers import Linear
from rnn_vs_transformer.optimizer import SGD

logger = logging.getLogger(__name__)

FEATURE_NAMES = ("size_sqft", "bedrooms", "age_years")

# Dollars per square foot, per bedroom and per year of age
TRUE_WEIGHTS = np.array([150.0, 10000.0, -1000.0])
TRUE_BIAS = 50000.0


def make_house_dataset(
    num_samples: int = 200, noise_std: float = 10000.0, seed: Optional[int] = None
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate houses whose prices follow ``TRUE_WEIGHTS`` and ``TRUE_BIAS``.

    Features:
        size_sqft: uniform in [500, 3500)
        bedrooms:  integer in [1, 5]
        age_years: uniform in [0, 50)

    Args:
        num_samples: Number of houses
        noise_std: Standard deviation of Gaussian noise added to each price
        seed: Optional seed for a private random generator

    Returns:
        features: Array of shape (num_samples, 3)
        prices: Array of shape (num_samples,)
    """
    if num_samples < 1:
        raise ValueError(f"num_samples must be >= 1, got {num_samples}")
    if noise_std < 0:
        raise ValueError(f"noise_std must be >= 0, got {noise_std}")

    rng = np.random.RandomState(seed)
    size_sqft = rng.uniform(500.0, 3500.0, size=num_samples)
    bedrooms = rng.randint(1, 6, size=num_samples).astype(np.float64)
    age_years = rng.uniform(0.0, 50.0, size=num_samples)

    features = np.stack([size_sqft, bedrooms, age_years], axis=1)
    prices = features @ TRUE_WEIGHTS + TRUE_BIAS
    prices = prices + rng.normal(0.0, noise_std, size=num_samples)
    return features, prices


def mean_squared_error(predictions: np.ndarray, targets: np.ndarray) -> float:
    """MSE = mean((prediction - target)^2)."""
    if predictions.shape != targets.shape:
        raise ValueError(
            f"Shape mismatch: predictions {predictions.shape} vs targets {targets.shape}"
        )
    return float(np.mean(np.square(predictions - targets)))


def mean_squared_error_backward(
    predictions: np.ndarray, targets: np.ndarray
) -> np.ndarray:
    """d MSE / d predictions = 2 * (prediction - target) / N"""
    return 2.0 * (predictions - targets) / predictions.size


class FeatureScaler:
    """
    Standardize columns to mean 0 and standard deviation 1.

    Square footage is in the thousands while bedrooms are single digits;
    without scaling, one learning rate cannot suit both weights. Columns with
    zero variance are centred but not divided.
    """

    def __init__(self):
        self.mean: Optional[np.ndarray] = None
        self.std: Optional[np.ndarray] = None

    @property
    def is_fitted(self) -> bool:
        return self.mean is not None

    def fit(self, values: np.ndarray) -> "FeatureScaler":
        self.mean = np.mean(values, axis=0)
        std = np.std(values, axis=0)
        self.std = np.where(std > 0, std, 1.0)
        return self

    def transform(self, values: np.ndarray) -> np.ndarray:
        if not self.is_fitted:
            raise RuntimeError("FeatureScaler.transform called before fit")
        return (values - self.mean) / self.std

    def inverse_transform(self, values: np.ndarray) -> np.ndarray:
        if not self.is_fitted:
            raise RuntimeError("FeatureScaler.inverse_transform called before fit")
        return values * self.std + self.mean


class HousePriceModel:
    """
    Linear regression trained with full-batch gradient descent.

    Both the features and the prices are standardized internally, so the
    learning rate in ``HousePriceConfig`` works regardless of whether prices
    are in dollars or millions of dollars. ``predict`` always answers in the
    original units.

    Example:
        features, prices = make_house_dataset(seed=0)
        model = HousePriceModel(HousePriceConfig())
        history = model.fit(features, prices)
        model.predict(np.array([2000.0, 3, 10]))
    """

    def __init__(self, config: Optional[HousePriceConfig] = None):
        self.config = config or HousePriceConfig()
        self.config.validate()

        self.linear = Linear(self.config.num_features, 1)
        self.feature_scaler = FeatureScaler()
        self.target_scaler = FeatureScaler()
        self.optimizer = SGD(learning_rate=self.config.learning_rate)

    @property
    def feature_names(self) -> Tuple[str, ...]:
        if self.config.num_features == len(FEATURE_NAMES):
            return FEATURE_NAMES
        return tuple(f"feature_{i}" for i in range(self.config.num_features))

    def _check_features(self, features: np.ndarray) -> np.ndarray:
        features = np.asarray(features, dtype=np.float64)
        if features.ndim == 1:
            features = features[np.newaxis, :]
        if features.ndim != 2 or features.shape[1] != self.config.num_features:
            raise ValueError(
                f"Expected features of shape (N, {self.config.num_features}), "
                f"got {features.shape}"
            )
        return features

    def fit(self, features: np.ndarray, prices: np.ndarray) -> List[float]:
        """
        Train on ``features`` (N, num_features) and ``prices`` (N,).

        Each epoch:
            1. predict = Linear(scaled features)
            2. loss = MSE(predict, scaled prices)
            3. backpropagate the MSE gradient through Linear
            4. take one SGD step

        Returns:
            The loss of every epoch, measured in standardized price units.
        """
        features = self._check_features(features)
        prices = np.asarray(prices, dtype=np.float64).reshape(-1)
        if prices.shape[0] != features.shape[0]:
            raise ValueError(
                f"Got {features.shape[0]} feature rows but {prices.shape[0]} prices"
            )

        scaled_features = self.feature_scaler.fit(features).transform(features)
        scaled_prices = self.target_scaler.fit(prices).transform(prices)

        self.optimizer.initialize(self.linear.get_parameters())

        history = []
        for epoch in range(self.config.num_epochs):
            predictions = self.linear.forward(scaled_features)[:, 0]
            loss = mean_squared_error(predictions, scaled_prices)
            history.append(loss)

            grad_predictions = mean_squared_error_backward(predictions, scaled_prices)
            self.linear.backward(grad_predictions[:, np.newaxis])
            self.optimizer.step(self.linear.get_gradients())

            if self.config.log_every and (epoch + 1) % self.config.log_every == 0:
                logger.info(
                    "epoch %d/%d loss=%.6f", epoch + 1, self.config.num_epochs, loss
                )

        return history

    def predict(self, features: np.ndarray) -> np.ndarray:
        """Predict prices in original units for one row or a (N, F) matrix."""
        if not self.target_scaler.is_fitted:
            raise RuntimeError("HousePriceModel.predict called before fit")
        features = self._check_features(features)
        scaled = self.linear.forward(self.feature_scaler.transform(features))[:, 0]
        return self.target_scaler.inverse_transform(scaled)

    def original_unit_weights(self) -> Tuple[np.ndarray, float]:
        """
        Undo the standardization so weights read as "dollars per unit".

        Returns:
            (weights, bias) comparable to ``TRUE_WEIGHTS`` and ``TRUE_BIAS``.
        """
        if not self.target_scaler.is_fitted:
            raise RuntimeError("Model has not been fitted")
        price_std = self.target_scaler.std
        price_mean = self.target_scaler.mean
        scaled_weights = self.linear.weights[0]
        scaled_bias = self.linear.bias[0]

        weights = price_std * scaled_weights / self.feature_scaler.std
        bias = price_mean + price_std * scaled_bias - np.sum(
            weights * self.feature_scaler.mean
        )
        return weights, float(bias)

    def explain(self, features_row: np.ndarray) -> Dict[str, float]:
        """
        Break one prediction into per-feature contributions.

        The contributions plus ``"baseline"`` add up to the prediction, which
        is the "weighted sum" intuition made concrete.
        """
        if not self.target_scaler.is_fitted:
            raise RuntimeError("HousePriceModel.explain called before fit")
        features = self._check_features(features_row)
        if features.shape[0] != 1:
            raise ValueError("explain expects a single house")

        price_std = float(self.target_scaler.std)
        scaled = self.feature_scaler.transform(features)[0]
        contributions = price_std * self.linear.weights[0] * scaled

        explanation = {
            name: float(value) for name, value in zip(self.feature_names, contributions)
        }
        explanation["baseline"] = float(
            self.target_scaler.mean + price_std * self.linear.bias[0]
        )
        return explanation


class Neuron:
    """
    A single artificial neuron: activation(inputs @ weights + bias).

    With the identity activation this is the house-price model; with tanh it
    is one unit of an RNN hidden state.
    """

    def __init__(self, weights, bias: float = 0.0, activation: str = "identity"):
        self.weights = np.asarray(weights, dtype=np.float64)
        self.bias = float(bias)
        self.activation_name = activation
        self.activation = get_activation(activation)

    def forward(self, inputs: np.ndarray) -> np.ndarray:
        inputs = np.asarray(inputs, dtype=np.float64)
        if inputs.shape[-1] != self.weights.shape[0]:
            raise ValueError(
                f"Neuron expects {self.weights.shape[0]} inputs, got {inputs.shape[-1]}"
            )
        return self.activation(inputs @ self.weights + self.bias)
