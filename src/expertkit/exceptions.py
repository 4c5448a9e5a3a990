"""Custom exceptions for expertkit.

Input errors (subclass ValueError) are raised when a caller supplies answers
or training metadata the tree cannot use:
- InputError: Base class for all input errors. Catch this to handle any bad input.
- MissingAttributeError: An attribute needed by the tree was not answered.
- InvalidNumericValueError: A numeric attribute received a non-numeric value.
- UnknownCategoryError: A categorical attribute received a value outside its options.
- InvalidAnswerError: A consultation answer did not match the current question.
- DuplicateAttributeError: Two attribute definitions share a name.
- ColumnsNotFoundError: A DataFrame lacks a requested target or feature column.

Structural errors (subclass RuntimeError) signal a defect in tree construction:
- StructuralError: A tree node lacks the fields its kind requires.

Consultation errors (subclass Exception) are raised by session operations:
- ConsultationError: Base class for session errors.
- ConsultationStateError: The operation is not valid in the session's current state.
- SessionNotFoundError: No session is stored under the requested identifier.
- SessionBusyError: Another answer for the same session is still in flight.
"""

from __future__ import annotations


class InputError(ValueError):
    """Base exception for answers or metadata the tree cannot use.

    Attributes:
        attribute (str | None): The attribute the error refers to, if any.
    """

    attribute: str | None

    def __init__(self, message: str, *, attribute: str | None = None) -> None:
        """Initialize InputError.

        Args:
            message (str): Description of the input error.
            attribute (str | None): The attribute the error refers to.
        """
        super().__init__(message)
        self.attribute = attribute

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Detailed string representation including message and attribute.
        """
        return f"{self.__class__.__name__}(message={str(self)!r}, attribute={self.attribute!r})"


class MissingAttributeError(InputError):
    """Raised when an attribute tested by the tree is absent from the answers.

    Attributes:
        attribute (str): The attribute that was not answered.
        provided (list[str]): Attribute names present in the answers.

    Examples:
        >>> err = MissingAttributeError("Car", provided=["Weather"])
        >>> str(err)
        "Missing attribute 'Car' in input"
    """

    attribute: str
    provided: list[str]

    def __init__(self, attribute: str, *, provided: list[str] | None = None) -> None:
        """Initialize MissingAttributeError.

        Args:
            attribute (str): The attribute that was not answered.
            provided (list[str] | None): Attribute names present in the answers.
        """
        super().__init__(f"Missing attribute '{attribute}' in input", attribute=attribute)
        self.provided = provided or []


class InvalidNumericValueError(InputError):
    """Raised when a numeric attribute receives a value that does not parse as a number.

    Attributes:
        attribute (str): The numeric attribute.
        value (str): The offending raw value.
    """

    attribute: str
    value: str

    def __init__(self, attribute: str, value: str) -> None:
        """Initialize InvalidNumericValueError.

        Args:
            attribute (str): The numeric attribute.
            value (str): The offending raw value.
        """
        super().__init__(f"Attribute '{attribute}' must be numeric, got '{value}'", attribute=attribute)
        self.value = value

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Detailed string representation including attribute and value.
        """
        return f"{self.__class__.__name__}(attribute={self.attribute!r}, value={self.value!r})"


class UnknownCategoryError(InputError):
    """Raised when a categorical attribute receives a value outside the node's options.

    Attributes:
        attribute (str): The categorical attribute.
        value (str): The offending raw value.
        options (list[str]): The values accepted at this point of the tree.

    Examples:
        >>> err = UnknownCategoryError("Car", "maybe", options=["yes", "no"])
        >>> err.options
        ['yes', 'no']
    """

    attribute: str
    value: str
    options: list[str]

    def __init__(self, attribute: str, value: str, *, options: list[str]) -> None:
        """Initialize UnknownCategoryError.

        Args:
            attribute (str): The categorical attribute.
            value (str): The offending raw value.
            options (list[str]): The values accepted at this point of the tree.
        """
        super().__init__(f"Unknown value '{value}' for attribute '{attribute}'", attribute=attribute)
        self.value = value
        self.options = options

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Detailed string representation including attribute, value, and options.
        """
        return (
            f"{self.__class__.__name__}("
            f"attribute={self.attribute!r}, value={self.value!r}, options={self.options!r})"
        )


class InvalidAnswerError(InputError):
    """Raised when a consultation answer does not fit the current question.

    Attributes:
        attribute (str): The attribute being asked about.
        answer (str): The raw answer that was rejected.
        options (list[str]): Valid options for a categorical question; empty
            for a numeric question.
    """

    attribute: str
    answer: str
    options: list[str]

    def __init__(self, message: str, *, attribute: str, answer: str, options: list[str] | None = None) -> None:
        """Initialize InvalidAnswerError.

        Args:
            message (str): Description of why the answer was rejected.
            attribute (str): The attribute being asked about.
            answer (str): The raw answer that was rejected.
            options (list[str] | None): Valid options for a categorical question.
        """
        super().__init__(message, attribute=attribute)
        self.answer = answer
        self.options = options or []

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Detailed string representation including attribute, answer, and options.
        """
        return (
            f"{self.__class__.__name__}("
            f"message={str(self)!r}, attribute={self.attribute!r}, "
            f"answer={self.answer!r}, options={self.options!r})"
        )


class DuplicateAttributeError(InputError):
    """Raised when attribute definitions repeat a name.

    Attributes:
        names (list[str]): The attribute names as supplied.
        duplicate_names (list[str]): The names that appear more than once
            (each listed once).

    Examples:
        >>> err = DuplicateAttributeError(names=["Car", "Car", "Weather"])
        >>> err.duplicate_names
        ['Car']
    """

    names: list[str]
    duplicate_names: list[str]

    def __init__(self, names: list[str]) -> None:
        """Initialize DuplicateAttributeError.

        Args:
            names (list[str]): The attribute names containing duplicates.
        """
        super().__init__("Duplicate attribute names are not allowed")
        self.names = names
        seen: set[str] = set()
        self.duplicate_names = []
        for name in names:
            if name in seen and name not in self.duplicate_names:
                self.duplicate_names.append(name)
            seen.add(name)


class ColumnsNotFoundError(InputError):
    """Raised when requested columns do not exist in a DataFrame.

    Attributes:
        missing_columns (list[str]): Column names that were not found.
        available_columns (list[str]): Column names present in the DataFrame.

    Examples:
        >>> err = ColumnsNotFoundError(missing_columns=["Car"], available_columns=["Weather", "Advice"])
        >>> str(err)
        "Columns not found in DataFrame: ['Car']"
    """

    missing_columns: list[str]
    available_columns: list[str]

    def __init__(self, missing_columns: list[str], available_columns: list[str]) -> None:
        """Initialize ColumnsNotFoundError.

        Args:
            missing_columns (list[str]): Column names not found in the DataFrame.
            available_columns (list[str]): Column names present in the DataFrame.
        """
        super().__init__(f"Columns not found in DataFrame: {sorted(missing_columns)}")
        self.missing_columns = missing_columns
        self.available_columns = available_columns


class StructuralError(RuntimeError):
    """Raised when a tree node lacks the fields its kind requires.

    This never results from bad input. It means the tree was built or edited
    incorrectly.

    Attributes:
        node_kind (str | None): The kind of the malformed node.
    """

    node_kind: str | None

    def __init__(self, message: str, *, node_kind: str | None = None) -> None:
        """Initialize StructuralError.

        Args:
            message (str): Description of the structural defect.
            node_kind (str | None): The kind of the malformed node.
        """
        super().__init__(message)
        self.node_kind = node_kind

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Detailed string representation including message and node kind.
        """
        return f"{self.__class__.__name__}(message={str(self)!r}, node_kind={self.node_kind!r})"


class ConsultationError(Exception):
    """Base exception for consultation session errors.

    Attributes:
        session_id (str | None): The session the error refers to.
    """

    session_id: str | None

    def __init__(self, message: str, *, session_id: str | None = None) -> None:
        """Initialize ConsultationError.

        Args:
            message (str): Description of the error.
            session_id (str | None): The session the error refers to.
        """
        super().__init__(message)
        self.session_id = session_id

    def __str__(self) -> str:
        """Return the error message.

        Returns:
            str: The message passed at construction.
        """
        return str(self.args[0]) if self.args else ""

    def __repr__(self) -> str:
        """Return detailed representation for debugging.

        Returns:
            str: Detailed string representation including message and session id.
        """
        return f"{self.__class__.__name__}(message={str(self)!r}, session_id={self.session_id!r})"


class ConsultationStateError(ConsultationError):
    """Raised when an operation is not valid in the session's current state.

    "Why" is only valid while a question is pending, and "how" only once the
    consultation has reached a conclusion.
    """


class SessionNotFoundError(ConsultationError, KeyError):
    """Raised when no session is stored under the requested identifier."""

    def __init__(self, session_id: str) -> None:
        """Initialize SessionNotFoundError.

        Args:
            session_id (str): The identifier that was looked up.
        """
        super().__init__(f"Session '{session_id}' not found", session_id=session_id)


class SessionBusyError(ConsultationError):
    """Raised when an answer for the session is still being processed by another caller."""

    def __init__(self, session_id: str) -> None:
        """Initialize SessionBusyError.

        Args:
            session_id (str): The busy session.
        """
        super().__init__(f"Session '{session_id}' is busy processing another answer", session_id=session_id)
