# Models Module
# PyTorch-backed adapters live in .autoencoder and are imported explicitly
from .oracle import ReconstructionOracle, IdentityOracle, CallableOracle, as_oracle
