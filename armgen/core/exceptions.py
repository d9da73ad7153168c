"""Generator exceptions for the schema code generation pipeline."""


class ArmgenError(Exception):
    """Base exception for all generator failures.

    Allows callers to catch every pipeline error with a single except clause.
    """

    def __init__(self, message: str, cause: Exception | None = None):
        """Initialize generator error.

        Args:
            message: Human-readable error description
            cause: Optional underlying exception that caused this error
        """
        super().__init__(message)
        self.cause = cause


class SchemaParseError(ArmgenError):
    """A schema document could not be lowered into the intermediate representation.

    Raised when:
    - The document is not valid JSON or its root is not an object
    - A keyword or keyword combination outside the supported set is used
    - A resource definition lacks its identifying type
    - A required property name is not declared in the properties
    - A reference cycle contains no object, array or dictionary indirection
    """

    def __init__(self, path: str, reason: str, cause: Exception | None = None):
        """Initialize parse error.

        Args:
            path: JSON pointer-like location inside the document
            reason: Why the node was rejected
            cause: Optional underlying exception
        """
        super().__init__(f"{path or '#'}: {reason}", cause)
        self.path = path or "#"
        self.reason = reason


class DanglingReferenceError(SchemaParseError):
    """A ``$ref`` points at a definition that is neither local nor declared external."""

    def __init__(self, path: str, ref: str):
        super().__init__(path, f"unresolved reference '{ref}'")
        self.ref = ref


class NameCollisionError(ArmgenError):
    """Two definitions resolve to the same generated symbol."""

    def __init__(self, symbol: str, first: str, second: str):
        """Initialize collision error.

        Args:
            symbol: The generated symbol both sources map to
            first: Description of the source that claimed the symbol first
            second: Description of the conflicting source
        """
        super().__init__(
            f"generated name '{symbol}' is produced by both {first} and {second}"
        )
        self.symbol = symbol
        self.first = first
        self.second = second


class OutputCollisionError(NameCollisionError):
    """Two documents in one sync run map to the same output package."""


class SyncEnvironmentError(ArmgenError):
    """Environment-level failure that aborts a whole sync run.

    Raised when:
    - The discovery root does not exist or cannot be listed
    - Generated files cannot be read back or persisted
    """

    def __init__(self, phase: str, message: str, cause: Exception | None = None):
        super().__init__(f"{phase}: {message}", cause)
        self.phase = phase
