class SolverConfig:
    """
    Base of the solver configurations. Defaults live on the subclass as class attributes
    and are overridden per instance with ``update(kwargs)``.
    """

    def __init__(self, **kwargs):
        self.update(kwargs)

    def update(self, kwargs: dict):
        for key, value in kwargs.items():
            if hasattr(self, key):
                setattr(self, key, value)
            else:
                raise ValueError(f"Invalid kwarg: {key}")
        return self

    def as_dict(self) -> dict:
        return {
            key: getattr(self, key)
            for key in dir(self)
            if not key.startswith('_') and not callable(getattr(self, key))
        }

    def __repr__(self):
        params = ", ".join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"{type(self).__name__}({params})"
