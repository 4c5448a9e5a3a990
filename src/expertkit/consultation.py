"""Interactive consultation: ask one question at a time and walk the trained tree.

A session is in one of two states. While *asking*, its current node is a split
and each valid answer moves it down the tree. A numeric attribute is asked
about once: when it is split again further down, the recorded answer takes
that branch too, so replaying the answers always ends at the same leaf. Once
the current node is a leaf the session is *complete*: further answers only
repeat the conclusion, and the recorded answers can be replayed to explain it.

Invalid answers never raise. They come back as an `InvalidAnswer` outcome
carrying the question again, so a caller can show the options and retry.
"""

from __future__ import annotations

from collections.abc import Container, Sequence
from dataclasses import dataclass, field, replace
from typing import Annotated, Literal
from uuid import uuid4

from loguru import logger
from pydantic import BaseModel, Field, StringConstraints

from expertkit.exceptions import ConsultationStateError, InvalidAnswerError
from expertkit.logging import CONSULT_LEVEL
from expertkit.tree.explaining import how, why
from expertkit.tree.models import AttributeDef, AttributeKind, Condition, LeafReason, NodeKind, TreeNode, parse_numeric

type InvalidAnswerType = Literal["InvalidNumericValue", "UnknownOption"]

SESSION_ID_PATTERN = r"^cs_[0-9a-f]{8}$"
_MAX_SESSION_ID_ATTEMPTS = 16

SessionId = Annotated[
    str,
    StringConstraints(pattern=SESSION_ID_PATTERN),
    Field(description="Consultation session identifier: 'cs_' and 8 lowercase hex digits.", examples=["cs_1a2b3c4d"]),
]

# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


def new_session_id(taken: Container[str] = ()) -> str:
    """Draw a random session identifier that is not already taken.

    Args:
        taken (Container[str]): Identifiers already in use, e.g. a store's keys.

    Returns:
        str: A fresh identifier such as `"cs_1a2b3c4d"`.

    Raises:
        RuntimeError: If every attempt collided with a taken identifier.
    """
    for _ in range(_MAX_SESSION_ID_ATTEMPTS):
        session_id = f"cs_{uuid4().hex[:8]}"
        if session_id not in taken:
            return session_id
    msg = f"Could not draw an unused session ID after {_MAX_SESSION_ID_ATTEMPTS} attempts"
    raise RuntimeError(msg)


@dataclass(frozen=True)
class ConsultationStep:
    """One answered question.

    Attributes:
        attribute (str): The attribute asked about.
        value (str): The accepted answer: the matched option for a categorical
            question, the stripped number text for a numeric one.
        branch (str): The edge followed, e.g. `"Car = yes"` or `"Mileage <= 25"`.
    """

    attribute: str
    value: str
    branch: str


@dataclass
class ConsultationSession:
    """State of one consultation over a trained tree.

    The session holds a reference to the shared tree and never modifies it.

    Attributes:
        session_id (str): Identifier in the format `cs_<8 hex chars>`.
        tree (TreeNode): Root of the trained tree.
        attributes (list[AttributeDef]): Attribute definitions the tree was trained on.
        current_node (TreeNode): The node whose question is pending, or the
            leaf reached once complete.
        steps (list[ConsultationStep]): Answered questions, in order.
        answers (dict[str, str]): Accepted answers by attribute name.
        name (str): Optional human-readable name, e.g. the knowledge base name.
    """

    session_id: str
    tree: TreeNode
    attributes: list[AttributeDef]
    current_node: TreeNode
    steps: list[ConsultationStep] = field(default_factory=list)
    answers: dict[str, str] = field(default_factory=dict)
    name: str = ""

    @property
    def is_complete(self) -> bool:
        """bool: Whether the session has reached a leaf."""
        return self.current_node.is_leaf

    @property
    def final_label(self) -> str | None:
        """str | None: The conclusion once complete, otherwise `None`."""
        return self.current_node.leaf_label() if self.is_complete else None

    def snapshot(self) -> ConsultationSession:
        """Copy the session's progress so it can be read without holding its lock.

        The tree and nodes are shared since they are never modified. Answering
        the copy does not advance the original.

        Returns:
            ConsultationSession: An independent copy of the session state.
        """
        return replace(self, attributes=list(self.attributes), steps=list(self.steps), answers=dict(self.answers))


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class Question(BaseModel):
    """The question pending in a session.

    Attributes:
        session_id (str): The session asking the question.
        attribute (str): The attribute being asked about.
        kind (AttributeKind): `"categorical"` or `"numeric"`.
        options (list[str]): Accepted values in display order; empty for a
            numeric question.
        text (str): Display text, e.g. `"Question: What is the Car? (1) yes (2) no"`.
    """

    session_id: str = Field(description="The session asking the question.")
    attribute: str = Field(description="The attribute being asked about.")
    kind: AttributeKind = Field(description='Attribute kind: "categorical" or "numeric".')
    options: list[str] = Field(default_factory=list, description="Accepted values in display order.")
    text: str = Field(description="Display text of the question.")


class Conclusion(BaseModel):
    """The final outcome of a session.

    Attributes:
        session_id (str): The completed session.
        label (str): The conclusion reached.
        reason (LeafReason | None): Why the leaf reached stopped splitting.
        already_complete (bool): `True` when reported for an answer given
            after the session had already completed.
        text (str): Display text, e.g. `"Conclusion: museum"`.
    """

    session_id: str = Field(description="The completed session.")
    label: str = Field(description="The conclusion reached.")
    reason: LeafReason | None = Field(default=None, description="Why the leaf stopped splitting.")
    already_complete: bool = Field(default=False, description="Reported again after completion.")
    text: str = Field(description="Display text of the conclusion.")


class InvalidAnswer(BaseModel):
    """An answer that did not fit the pending question. The session is unchanged.

    Attributes:
        error_type (InvalidAnswerType): `"InvalidNumericValue"` or `"UnknownOption"`.
        message (str): What was wrong and which answers are accepted.
        answer (str): The rejected raw answer.
        question (Question): The question still pending.
    """

    error_type: InvalidAnswerType = Field(description="Category of the rejection.")
    message: str = Field(description="What was wrong and which answers are accepted.")
    answer: str = Field(description="The rejected raw answer.")
    question: Question = Field(description="The question still pending.")

    def to_exception(self) -> InvalidAnswerError:
        """Convert this outcome into an exception for callers that prefer raising.

        Returns:
            InvalidAnswerError: Carries the attribute, answer, and options.
        """
        return InvalidAnswerError(
            self.message,
            attribute=self.question.attribute,
            answer=self.answer,
            options=self.question.options,
        )


type ConsultationOutcome = Question | Conclusion | InvalidAnswer


# ---------------------------------------------------------------------------
# Public interface
# ---------------------------------------------------------------------------


def start_consultation(
    tree: TreeNode,
    attributes: Sequence[AttributeDef],
    *,
    session_id: str | None = None,
    name: str = "",
) -> ConsultationSession:
    """Start a consultation at the root of a trained tree.

    A tree that is a single leaf yields a session that is already complete.

    Args:
        tree (TreeNode): Root of a trained tree.
        attributes (Sequence[AttributeDef]): Attribute definitions the tree was trained on.
        session_id (str | None): Identifier to use; a new one is generated when omitted.
        name (str): Optional human-readable name for the session.

    Returns:
        ConsultationSession: The new session.
    """
    session = ConsultationSession(
        session_id=session_id or new_session_id(),
        tree=tree,
        attributes=list(attributes),
        current_node=tree,
        name=name,
    )
    logger.log(
        CONSULT_LEVEL,
        "Consultation started",
        session_id=session.session_id,
        name=name,
        complete=session.is_complete,
    )
    return session


def current_prompt(session: ConsultationSession) -> Question | Conclusion:
    """Return the pending question, or the conclusion once complete.

    Args:
        session (ConsultationSession): The session.

    Returns:
        Question | Conclusion: What the session currently presents.
    """
    if session.is_complete:
        return _conclusion(session)
    return _question(session)


def answer(session: ConsultationSession, raw_answer: str) -> ConsultationOutcome:
    """Answer the pending question and advance the session.

    Categorical questions accept a 1-based option number or the option text
    (case-insensitive); the number is tried first. Numeric questions accept
    any finite number.

    Args:
        session (ConsultationSession): The session to advance.
        raw_answer (str): The answer as typed.

    Returns:
        ConsultationOutcome: The next `Question`, the `Conclusion` once a leaf
            is reached, or an `InvalidAnswer` leaving the session unchanged.
            Answers after completion return the conclusion with
            `already_complete=True`.

    Examples:
        >>> from expertkit.tree.models import AttributeDef, LeafReason, TreeNode
        >>> car = AttributeDef.categorical("Car", ["yes", "no"])
        >>> tree = TreeNode.categorical_split(
        ...     "Car",
        ...     {"yes": TreeNode.leaf("museum", LeafReason.PURE), "no": TreeNode.leaf("home", LeafReason.PURE)},
        ...     example_count=2,
        ...     error_count=1,
        ...     majority_label="museum",
        ... )
        >>> session = start_consultation(tree, [car])
        >>> answer(session, "2").text
        'Conclusion: home'
    """
    if session.is_complete:
        return _conclusion(session, already_complete=True)

    node = session.current_node
    attribute = node.tested_attribute()
    token = raw_answer.strip()

    if node.kind == NodeKind.NUMERIC:
        number = parse_numeric(token)
        if number is None:
            return _reject(
                session,
                raw_answer,
                error_type="InvalidNumericValue",
                message=f"Please enter a numeric value for '{attribute}'.",
            )
        condition, next_node = _numeric_route(node, number)
        _advance(session, attribute, token, condition, next_node)
    else:
        children = node.categorical_branches()
        matched = _match_option(token, list(children))
        if matched is None:
            return _reject(
                session,
                raw_answer,
                error_type="UnknownOption",
                message=(
                    f"'{raw_answer}' is not a valid option for '{attribute}'. "
                    f"Options: {_format_options(list(children))}"
                ),
            )
        condition = Condition(attribute=attribute, operator="=", value=matched)
        _advance(session, attribute, matched, condition, children[matched])

    return current_prompt(session)


def explain_why(session: ConsultationSession) -> str:
    """Explain why the pending question is being asked.

    Args:
        session (ConsultationSession): A session that is still asking.

    Returns:
        str: The WHY narrative for the pending question.

    Raises:
        ConsultationStateError: If the session is already complete.
    """
    if session.is_complete:
        raise ConsultationStateError(
            "The consultation is already complete; there is no pending question to explain. "
            "Ask how the conclusion was reached instead.",
            session_id=session.session_id,
        )

    attribute = _attribute_for_node(session, session.current_node)
    logger.log(CONSULT_LEVEL, "Explaining why", session_id=session.session_id, attribute=attribute.name)
    return why(session.tree, attribute, session.answers)


def explain_how(session: ConsultationSession) -> str:
    """Explain how the conclusion was reached by replaying the recorded answers.

    Args:
        session (ConsultationSession): A completed session.

    Returns:
        str: The HOW narrative.

    Raises:
        ConsultationStateError: If the session has not reached a conclusion yet.
    """
    if not session.is_complete:
        raise ConsultationStateError(
            "The consultation has not reached a conclusion yet; answer the pending question first.",
            session_id=session.session_id,
        )

    logger.log(CONSULT_LEVEL, "Explaining how", session_id=session.session_id, steps=len(session.steps))
    return how(session.tree, session.answers)


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _advance(
    session: ConsultationSession,
    attribute: str,
    value: str,
    condition: Condition,
    next_node: TreeNode,
) -> None:
    """Record an accepted answer and move down the tree, past any split it already answers."""
    _take_branch(session, attribute, value, condition, next_node, message="Answer accepted")

    # A numeric attribute may be split again below; its answer decides those nodes too.
    while session.current_node.kind == NodeKind.NUMERIC:
        node = session.current_node
        attribute = node.tested_attribute()
        value = session.answers.get(attribute)
        number = parse_numeric(value) if value is not None else None
        if number is None:
            return
        condition, next_node = _numeric_route(node, number)
        _take_branch(session, attribute, value, condition, next_node, message="Answer reused")


def _numeric_route(node: TreeNode, number: float) -> tuple[Condition, TreeNode]:
    """Pick the child of a numeric split for a value; the threshold itself goes left."""
    threshold, left, right = node.numeric_branches()
    if number <= threshold:
        return Condition(attribute=node.tested_attribute(), operator="<=", value=threshold), left
    return Condition(attribute=node.tested_attribute(), operator=">", value=threshold), right


def _take_branch(
    session: ConsultationSession,
    attribute: str,
    value: str,
    condition: Condition,
    next_node: TreeNode,
    *,
    message: str,
) -> None:
    session.steps.append(ConsultationStep(attribute=attribute, value=value, branch=str(condition)))
    session.answers[attribute] = value
    session.current_node = next_node
    logger.log(
        CONSULT_LEVEL,
        message,
        session_id=session.session_id,
        attribute=attribute,
        branch=str(condition),
        complete=session.is_complete,
    )


def _reject(
    session: ConsultationSession,
    raw_answer: str,
    *,
    error_type: InvalidAnswerType,
    message: str,
) -> InvalidAnswer:
    """Build an `InvalidAnswer` for the pending question and log the rejection."""
    question = _question(session)
    logger.warning(
        "Answer rejected",
        session_id=session.session_id,
        attribute=question.attribute,
        answer=raw_answer,
        error_type=error_type,
    )
    return InvalidAnswer(error_type=error_type, message=message, answer=raw_answer, question=question)


def _match_option(token: str, options: list[str]) -> str | None:
    """Match an answer against the options: a 1-based number first, then case-insensitive text.

    Args:
        token (str): The stripped answer.
        options (list[str]): Options in display order.

    Returns:
        str | None: The matched option, or `None`.
    """
    if token.isdigit():
        index = int(token)
        if 1 <= index <= len(options):
            return options[index - 1]

    wanted = token.casefold()
    for option in options:
        if option.casefold() == wanted:
            return option
    return None


def _question(session: ConsultationSession) -> Question:
    """Describe the question pending at the session's current split node."""
    node = session.current_node
    attribute = node.tested_attribute()
    if node.kind == NodeKind.NUMERIC:
        return Question(
            session_id=session.session_id,
            attribute=attribute,
            kind="numeric",
            text=f"Question: What is the {attribute}? (Enter a numeric value)",
        )

    options = list(node.categorical_branches())
    return Question(
        session_id=session.session_id,
        attribute=attribute,
        kind="categorical",
        options=options,
        text=f"Question: What is the {attribute}? {_format_options(options)}",
    )


def _conclusion(session: ConsultationSession, *, already_complete: bool = False) -> Conclusion:
    """Describe the conclusion of a completed session."""
    leaf = session.current_node
    label = leaf.leaf_label()
    text = f"Conclusion: {label}"
    if already_complete:
        text = f"This consultation is already complete.\n{text}"
    return Conclusion(
        session_id=session.session_id,
        label=label,
        reason=leaf.reason,
        already_complete=already_complete,
        text=text,
    )


def _attribute_for_node(session: ConsultationSession, node: TreeNode) -> AttributeDef:
    """Find the definition of the attribute tested at a node.

    Falls back to a definition derived from the node itself when the session's
    attribute list lacks it.

    Args:
        session (ConsultationSession): The session.
        node (TreeNode): A split node.

    Returns:
        AttributeDef: The matching or derived definition.
    """
    name = node.tested_attribute()
    wanted = name.casefold()
    for attribute in session.attributes:
        if attribute.name.casefold() == wanted:
            return attribute
    if node.kind == NodeKind.NUMERIC:
        return AttributeDef.numeric(name)
    return AttributeDef.categorical(name, list(node.categorical_branches()))


def _format_options(options: list[str]) -> str:
    """Render options as `(1) yes (2) no`."""
    return " ".join(f"({position}) {option}" for position, option in enumerate(options, start=1))
