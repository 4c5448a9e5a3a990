"""Demonstrates how to enable and configure logging in expertkit.

expertkit logging is disabled by default. Users opt in by calling ``enable_logging()``,
which returns a ``LoggingHandle``. The handle can be used as a context manager
(``with enable_logging(): ...``) or disabled manually via ``handle.disable()``.
When the last active handle is disabled, expertkit logging is automatically turned off.

Key concepts shown here:

- ``level``: controls the minimum log level. The custom ``CONSULT`` level
  (numeric value 25, between INFO and WARNING) surfaces consultation
  operations and is the default. ``"DEBUG"`` also shows every split the
  tree builder chose.
- ``log_format``: ``"short"`` shows ``timestamp | level | function - message``;
  ``"full"`` adds the module and line number.
- Rejected answers are logged as warnings and returned, not raised.
- Automatic cleanup: logging is re-disabled when the context manager exits.
"""

import polars as pl

from expertkit import (
    ConsultationStore,
    enable_logging,
    format_report,
    train,
    training_set_from_frame,
)

df_sunday = pl.DataFrame({
    "Weather": ["raining", "sunny", None, None],
    "Family": ["yes", "yes", "no", None],
    "Car": ["yes", "yes", "yes", "no"],
    "Advice": ["museum", "beach", "fishing", "home"],
})

# Enable logging at DEBUG level (and above) with full log format for better visibility of log details
with enable_logging(
    level="DEBUG",
    log_format="full",
):
    # Derive attributes and examples from the DataFrame, then train
    training_set = training_set_from_frame(df_sunday, "Advice")
    tree = train(training_set.examples, training_set.attributes)
    print(f"\n{format_report(tree, training_set.attributes)}\n")

    # Run a consultation through a store
    store = ConsultationStore()
    session = store.start(tree, training_set.attributes, name="sunday")
    print(store.explain_why(session.session_id))

    # Try an invalid answer to show warning logging
    print(store.answer(session.session_id, "maybe").message)  # type: ignore[union-attr]

    for raw_answer in ["yes", "yes", "sunny"]:
        outcome = store.answer(session.session_id, raw_answer)
        print(outcome.text)  # type: ignore[union-attr]

    print(store.explain_how(session.session_id))

# Logging automatically disabled here
