"""Greedy Token-and-Duration Transducer (TDT) decoding.

The decoder-joint network is evaluated one encoder frame at a time. Each
evaluation yields token logits followed by duration logits; the best token
is emitted unless it is blank, and the best duration says how many frames
to skip. A zero duration keeps decoding the same frame, bounded by
``max_tokens_per_frame`` so the loop always terminates.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from config import LSTM_HIDDEN_SIZE, MAX_TOKENS_PER_FRAME, NUM_LSTM_LAYERS
from interfaces import JointStep
from models import DecodeStep, EncoderOutput, RecurrentState

logger = logging.getLogger(__name__)


def first_argmax(values: np.ndarray) -> Optional[int]:
    """Index of the maximum value, earliest index winning.

    Equivalent to a left-to-right scan that only replaces the current best
    when a value compares strictly greater. NaN never compares greater and
    never loses to anything, so a leading NaN pins the result to index 0
    and later NaNs are skipped. Returns None for an empty vector.
    """
    values = np.asarray(values, dtype=np.float64).reshape(-1)
    if values.size == 0:
        return None
    if np.isnan(values[0]):
        return 0
    return int(np.nanargmax(values))


def decode_step(
    joint: JointStep,
    frame: np.ndarray,
    prev_token: int,
    state: RecurrentState,
    vocab_size: int,
    blank_id: int,
) -> DecodeStep:
    logits, new_state = joint(frame, prev_token, state)
    logits = np.asarray(logits).reshape(-1)
    token_logits = logits[:vocab_size]
    duration_logits = logits[vocab_size:]

    token = first_argmax(token_logits)
    step = first_argmax(duration_logits)
    return DecodeStep(
        token=blank_id if token is None else token,
        step=0 if step is None else step,
        state=new_state,
    )


def greedy_tdt_decode(
    encoder_output: EncoderOutput,
    joint: JointStep,
    blank_id: int,
    vocab_size: int,
    max_tokens_per_frame: int = MAX_TOKENS_PER_FRAME,
    num_layers: int = NUM_LSTM_LAYERS,
    hidden_size: int = LSTM_HIDDEN_SIZE,
) -> list[int]:
    """Decode one utterance into token ids.

    Args:
        encoder_output: Encoder activations of shape (1, dim, frames) plus the
            number of valid frames.
        joint: Callable running the decoder-joint network on one frame.
        blank_id: Token id meaning "nothing emitted".
        vocab_size: Number of leading logits that score tokens; the rest
            score durations.
        max_tokens_per_frame: Emissions allowed at one frame before the time
            index is forced forward.

    Returns:
        Emitted token ids in order, blanks excluded.
    """
    length = encoder_output.valid_length
    state = RecurrentState.zeros(num_layers, hidden_size)
    tokens: list[int] = []
    emitted_at_frame = 0
    calls = 0
    t = 0

    while t < length:
        prev_token = tokens[-1] if tokens else blank_id
        result = decode_step(
            joint,
            encoder_output.frame(t),
            prev_token,
            state,
            vocab_size,
            blank_id,
        )
        calls += 1

        if result.token != blank_id:
            state = result.state
            tokens.append(result.token)
            emitted_at_frame += 1

        if result.step > 0:
            t += result.step
            emitted_at_frame = 0
        elif result.token == blank_id or emitted_at_frame >= max_tokens_per_frame:
            t += 1
            emitted_at_frame = 0

    logger.debug("Decoded %d tokens from %d frames in %d joint calls", len(tokens), length, calls)
    return tokens
