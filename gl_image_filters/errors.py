"""
Exception types raised or recorded by the filter pipeline.
"""


class FilterPipelineError(Exception):
    """Base class for pipeline failures."""


class ShaderBuildError(FilterPipelineError):
    """
    A shader program could not be built.

    Attributes:
        diagnostic: The compiler or linker log reported by the driver
    """

    def __init__(self, message: str, diagnostic: str = ""):
        super().__init__(message)
        self.diagnostic = diagnostic


class ShaderCompileError(ShaderBuildError):
    """A shader stage failed to compile."""


class ProgramLinkError(ShaderBuildError):
    """The compiled stages failed to link into a program."""


class AttributeNotFound(FilterPipelineError):
    """A vertex attribute required by the renderer is missing from the program."""

    def __init__(self, name: str):
        super().__init__(f"Vertex attribute '{name}' not found in program")
        self.name = name


class ImageLoadFailure(FilterPipelineError):
    """No usable decoded image is available for rendering."""
