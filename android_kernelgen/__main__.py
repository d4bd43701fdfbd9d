"""Allow ``python -m android_kernelgen``."""

from android_kernelgen.cli import app

app(prog_name="kernelgen")
