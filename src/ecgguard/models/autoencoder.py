"""
LSTM Reconstruction Autoencoder.

Sequence autoencoder trained on normal sinus rhythm. A window the model
reconstructs poorly is morphologically unlike what it was trained on.

Key Features:
- LSTM encoder compressing a 10 s window into a latent vector
- LSTM decoder unrolling the latent vector back over every timestep
- Per-timestep linear readout (dense output, same length as input)

Input/Output: (batch, seq_len, 1) -> (batch, seq_len, 1)
"""

import torch
import torch.nn as nn
import numpy as np
from pathlib import Path
from typing import Union
from dataclasses import dataclass

from ..exceptions import TransientOracleFailure
from .oracle import ReconstructionOracle


@dataclass
class AutoencoderConfig:
    """Configuration for LSTMAutoencoder."""
    n_features: int = 1
    hidden_size: int = 64
    latent_size: int = 32
    num_layers: int = 1
    dropout: float = 0.0


class LSTMAutoencoder(nn.Module):
    """
    LSTM encoder / decoder for ECG window reconstruction.

    The decoder receives the projected latent vector at every timestep,
    so the output length always equals the input length.
    """

    def __init__(self, config: AutoencoderConfig = None):
        super().__init__()

        self.config = config or AutoencoderConfig()
        c = self.config
        lstm_dropout = c.dropout if c.num_layers > 1 else 0.0

        self.encoder = nn.LSTM(
            input_size=c.n_features,
            hidden_size=c.hidden_size,
            num_layers=c.num_layers,
            batch_first=True,
            dropout=lstm_dropout,
        )
        self.to_latent = nn.Linear(c.hidden_size, c.latent_size)
        self.from_latent = nn.Linear(c.latent_size, c.hidden_size)
        self.decoder = nn.LSTM(
            input_size=c.hidden_size,
            hidden_size=c.hidden_size,
            num_layers=c.num_layers,
            batch_first=True,
            dropout=lstm_dropout,
        )
        self.output_layer = nn.Linear(c.hidden_size, c.n_features)

    def encode(self, x: torch.Tensor) -> torch.Tensor:
        """
        Args:
            x: (batch, seq_len, n_features)

        Returns:
            latent: (batch, latent_size)
        """
        _, (h_n, _) = self.encoder(x)
        return self.to_latent(h_n[-1])

    def decode(self, latent: torch.Tensor, seq_len: int) -> torch.Tensor:
        """
        Args:
            latent: (batch, latent_size)
            seq_len: Number of timesteps to reconstruct

        Returns:
            reconstruction: (batch, seq_len, n_features)
        """
        h = self.from_latent(latent).unsqueeze(1).repeat(1, seq_len, 1)
        out, _ = self.decoder(h)
        return self.output_layer(out)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.decode(self.encode(x), x.size(1))


class TorchReconstructionOracle(ReconstructionOracle):
    """
    Oracle backed by a PyTorch reconstruction model.

    Runs in eval mode under ``torch.no_grad()``; numpy in, numpy out.
    """

    def __init__(self, model: nn.Module, device: str = 'cpu'):
        self.device = torch.device(device)
        self.model = model.to(self.device)
        self.model.eval()

    @classmethod
    def from_checkpoint(
        cls,
        path: Union[str, Path],
        config: AutoencoderConfig = None,
        device: str = 'cpu',
    ) -> 'TorchReconstructionOracle':
        """Load LSTMAutoencoder weights from a saved state dict."""
        model = LSTMAutoencoder(config)
        state = torch.load(str(path), map_location=device)
        model.load_state_dict(state)
        return cls(model, device=device)

    def infer(self, window: np.ndarray) -> np.ndarray:
        x = np.asarray(window, dtype=np.float32).reshape(-1)
        # Shape: [batch=1, seq, features=1]
        tensor = torch.from_numpy(x.copy()).reshape(1, -1, 1).to(self.device)

        with torch.no_grad():
            output = self.model(tensor)

        reconstruction = output.reshape(-1).cpu().numpy().astype(np.float64)
        if reconstruction.shape[0] != x.shape[0]:
            raise TransientOracleFailure(
                f"Model returned {reconstruction.shape[0]} samples for a "
                f"{x.shape[0]}-sample window"
            )
        return reconstruction

