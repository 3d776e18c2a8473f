import torch


def auto_device(existing_device="", user_input_device="auto"):
    """
    Pick the device the graph buffers and solver workspaces are placed on.

    Args:
        existing_device: The device where the graph tensors currently live
        user_input_device: User-specified device or 'auto' for automatic selection

    Returns:
        str: Selected device as a string
    """
    # an explicit device always wins
    if user_input_device is not None and str(user_input_device) != "auto":
        try:
            torch.device(str(user_input_device))
            return str(user_input_device)
        except RuntimeError:
            raise ValueError(f"Invalid device: {user_input_device}")

    def prioritize_existing_device(existing_device, new_device):
        existing_device = str(existing_device)
        if new_device in existing_device:
            return existing_device
        return new_device

    if torch.cuda.is_available():
        return prioritize_existing_device(existing_device, "cuda")

    # sparse CSR matmul on MPS is incomplete, only use it if the data is already there
    try:
        if torch.backends.mps.is_available() and "mps" in str(existing_device):
            return "mps"
    except AttributeError:
        pass

    try:
        if hasattr(torch, 'xpu') and torch.xpu.is_available():
            return prioritize_existing_device(existing_device, "xpu")
    except (ImportError, AttributeError):
        pass

    return "cpu"


def synchronize(device):
    """Block the host until all work queued on ``device`` has finished."""
    device = torch.device(device)
    if device.type == "cuda":
        torch.cuda.synchronize(device)
    elif device.type == "mps":
        torch.mps.synchronize()
    elif device.type == "xpu":
        torch.xpu.synchronize(device)
