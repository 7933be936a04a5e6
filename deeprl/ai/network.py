"""
Q-Network Function Approximator
===============================

The neural network that approximates Q-values for a temporal window of
frames, and the thin wrapper the training core talks to.

Theory:
    Q(s, a) = expected discounted future reward of taking a in s
    Input:  one flattened temporal window (WINDOW_LENGTH frames)
    Output: one Q-value per action

Training is a masked regression: for every sample only the slot of the
action actually taken carries a target, and a 0/1 filter zeroes the
others before the loss is computed:

    loss = sum((Q(s) * filter - target)^2) / (2 * batch)

Approximator contract used by the evaluator and trainer:
    batch_forward(inputs)                   -> ndarray [batch, num_actions]
    train_step(inputs, targets, filters)    -> float loss
    save(path) / load(path)
"""

import math
import os
from typing import Any, Callable, Dict, List, Optional, cast

import numpy as np
import torch
import torch.nn as nn
import torch.nn.functional as F
import torch.optim as optim

from config import Config
from .experience import InvariantError
from ..utils.logger import get_logger, log_model_event

logger = get_logger(__name__)


class QNetwork(nn.Module):
    """
    Multi-layer perceptron over a flattened temporal window.

    Architecture:
        Input Layer -> Hidden Layers -> Output Layer
        (with USE_DUELING: shared trunk -> value + advantage streams)

    Example:
        >>> config = Config()
        >>> net = QNetwork(config.INPUT_SIZE, config.NUM_ACTIONS, config)
        >>> q_values = net(torch.zeros(1, config.INPUT_SIZE))  # Shape: (1, 7)
    """

    def __init__(
        self,
        input_size: int,
        num_actions: int,
        config: Optional[Config] = None,
        hidden_layers: Optional[List[int]] = None,
    ):
        """
        Initialize the network.

        Args:
            input_size: Floats per temporal window
            num_actions: Number of possible actions (output dimension)
            config: Configuration object
            hidden_layers: Override config's hidden layer sizes
        """
        super().__init__()

        self.config = config or Config()
        self.input_size = input_size
        self.num_actions = num_actions
        self.hidden_sizes = list(hidden_layers or self.config.HIDDEN_LAYERS)
        self.use_dueling = self.config.USE_DUELING

        # Cache activation function (avoids dict lookup every forward pass)
        self._activation_fn = self._get_activation_fn()

        sizes = [input_size] + self.hidden_sizes
        self.layers = nn.ModuleList(
            nn.Linear(sizes[i], sizes[i + 1]) for i in range(len(sizes) - 1)
        )
        trunk_out = sizes[-1]
        if self.use_dueling:
            self.value_head = nn.Linear(trunk_out, 1)
            self.advantage_head = nn.Linear(trunk_out, num_actions)
        else:
            self.output = nn.Linear(trunk_out, num_actions)

        self._init_weights()

    def _init_weights(self) -> None:
        """Xavier/Glorot initialization for every linear layer."""
        for module in self.modules():
            if isinstance(module, nn.Linear):
                nn.init.xavier_uniform_(module.weight)
                nn.init.constant_(module.bias, 0.0)

    def _get_activation_fn(self) -> Callable[..., Any]:
        """Get the activation function based on config."""
        activation_map: Dict[str, Callable[..., Any]] = {
            'relu': F.relu,
            'leaky_relu': F.leaky_relu,
            'tanh': torch.tanh,
            'elu': F.elu,
        }
        result = activation_map.get(self.config.ACTIVATION, F.relu)
        return cast(Callable[..., Any], result)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: Input tensor of shape (batch_size, input_size)

        Returns:
            Q-values tensor of shape (batch_size, num_actions)
        """
        for layer in self.layers:
            x = self._activation_fn(layer(x))

        if self.use_dueling:
            value = self.value_head(x)
            advantage = self.advantage_head(x)
            return value + advantage - advantage.mean(dim=1, keepdim=True)
        return self.output(x)

    def count_parameters(self) -> int:
        """Return total number of trainable parameters."""
        return sum(p.numel() for p in self.parameters() if p.requires_grad)


class TorchApproximator:
    """
    Q-network plus optimizer behind the numpy-in / numpy-out contract.

    Inputs are copied into pre-allocated device tensors, so steady-state
    forward and training calls do not allocate new input buffers.
    """

    def __init__(
        self,
        input_size: int,
        num_actions: int,
        batch_size: int,
        config: Optional[Config] = None,
        device: Optional[torch.device] = None,
    ):
        self.config = config or Config()
        self.input_size = input_size
        self.num_actions = num_actions
        self.batch_size = batch_size
        self.device = device or self.config.DEVICE

        self.net = QNetwork(input_size, num_actions, self.config).to(self.device)
        self.optimizer = optim.Adam(self.net.parameters(), lr=self.config.LEARNING_RATE)
        self.steps = 0

        self._inputs = torch.empty((batch_size, input_size), dtype=torch.float32, device=self.device)
        self._targets = torch.empty((batch_size, num_actions), dtype=torch.float32, device=self.device)
        self._filters = torch.empty((batch_size, num_actions), dtype=torch.float32, device=self.device)

    @classmethod
    def from_config(cls, config: Config) -> 'TorchApproximator':
        return cls(config.INPUT_SIZE, config.NUM_ACTIONS, config.MINIBATCH_SIZE, config)

    def _load_inputs(self, inputs: np.ndarray) -> torch.Tensor:
        if inputs.shape != (self.batch_size, self.input_size):
            raise ValueError(
                f"expected input of shape {(self.batch_size, self.input_size)}, got {inputs.shape}"
            )
        # copy_() handles CPU->device transfer automatically
        self._inputs.copy_(torch.from_numpy(np.ascontiguousarray(inputs, dtype=np.float32)))
        return self._inputs

    def batch_forward(self, inputs: np.ndarray) -> np.ndarray:
        """
        Q-values for a full minibatch.

        Args:
            inputs: Array of shape (batch_size, input_size)

        Returns:
            Array of shape (batch_size, num_actions)
        """
        with torch.inference_mode():
            q_values = self.net(self._load_inputs(inputs))
        return q_values.cpu().numpy()

    def train_step(self, inputs: np.ndarray, targets: np.ndarray, filters: np.ndarray) -> float:
        """
        One masked-regression gradient step.

        Args:
            inputs: (batch_size, input_size)
            targets: (batch_size, num_actions), target in the taken action's slot
            filters: (batch_size, num_actions), 1.0 in the taken action's slot

        Returns:
            Loss value before the step

        Raises:
            InvariantError: If the loss is not finite
        """
        states = self._load_inputs(inputs)
        self._targets.copy_(torch.from_numpy(np.ascontiguousarray(targets, dtype=np.float32)))
        self._filters.copy_(torch.from_numpy(np.ascontiguousarray(filters, dtype=np.float32)))

        q_values = self.net(states)
        loss = ((q_values * self._filters - self._targets) ** 2).sum() / (2 * self.batch_size)

        loss_value = loss.item()
        if not math.isfinite(loss_value):
            raise InvariantError(f"non-finite training loss: {loss_value}")

        self.optimizer.zero_grad()
        loss.backward()
        if self.config.GRAD_CLIP > 0:
            torch.nn.utils.clip_grad_norm_(self.net.parameters(), self.config.GRAD_CLIP)
        self.optimizer.step()
        self.steps += 1

        return loss_value

    def count_parameters(self) -> int:
        return self.net.count_parameters()

    def save(self, filepath: str, **metadata) -> None:
        """
        Save weights and optimizer state.

        Args:
            filepath: Path to save file
            **metadata: Extra context stored in the checkpoint and logged
        """
        dir_path = os.path.dirname(filepath)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)

        checkpoint = {
            'net_state_dict': self.net.state_dict(),
            'optimizer_state_dict': self.optimizer.state_dict(),
            'steps': self.steps,
            'input_size': self.input_size,
            'num_actions': self.num_actions,
            'metadata': metadata,
        }
        torch.save(checkpoint, filepath)
        log_model_event('save', filepath, steps=self.steps, **metadata)

    def load(self, filepath: str) -> Dict[str, Any]:
        """
        Load weights and optimizer state.

        Returns:
            Metadata stored alongside the weights

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the checkpoint was saved for a different architecture
        """
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Model file not found: {filepath}")

        checkpoint = torch.load(filepath, map_location=self.device, weights_only=False)

        saved_input = checkpoint.get('input_size', self.input_size)
        saved_actions = checkpoint.get('num_actions', self.num_actions)
        if saved_input != self.input_size or saved_actions != self.num_actions:
            raise ValueError(
                f"architecture mismatch: saved ({saved_input}, {saved_actions}), "
                f"current ({self.input_size}, {self.num_actions})"
            )

        self.net.load_state_dict(checkpoint['net_state_dict'])
        self.optimizer.load_state_dict(checkpoint['optimizer_state_dict'])
        self.steps = checkpoint.get('steps', 0)

        metadata = checkpoint.get('metadata', {})
        log_model_event('load', filepath, steps=self.steps, **metadata)
        return metadata
