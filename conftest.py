import os
import pytest


for root, dirs, files in os.walk(".", topdown=True):
    if any(root.startswith(folder) for folder in ["./common", "./utils", "./lib"]):
        for file in files:
            if file.endswith(".py") and file != "__init__.py":
                module = os.path.join(root, file)[len("./") : -len(".py")].replace(os.sep, ".")
                pytest.register_assert_rewrite(module)
