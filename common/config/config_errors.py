class ConfigFileNotFoundError(FileNotFoundError):
    def __init__(self, path: str):
        self.path = path
        self.message = f"Config file '{path}' is not found!"
        super().__init__(self.message)


class InvalidConfigError(Exception):
    def __init__(self, path: str, reason: str):
        self.message = f"Config file '{path}' is invalid: {reason}"
        super().__init__(self.message)
