import torch


def expects(condition, message: str):
    """Raise ``ValueError(message)`` unless ``condition`` holds. Used for caller bugs only."""
    if not condition:
        raise ValueError(message)


def check_buffer(buffer, name: str, shape: tuple):
    expects(buffer is not None, f"Null {name} buffer.")
    expects(isinstance(buffer, torch.Tensor), f"{name} buffer must be a torch.Tensor, got {type(buffer).__name__}")
    expects(tuple(buffer.shape) == tuple(shape),
            f"{name} buffer has shape {tuple(buffer.shape)}, expected {tuple(shape)}")
