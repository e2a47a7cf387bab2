"""Frame-based user interface on a display: frames, transitions, indicators and overlays."""

from __future__ import annotations

import math
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Optional, Sequence

from .display import DisplaySurface, TextAlignment

_MASK16 = 0xFFFF
_MASK32 = 0xFFFFFFFF

ACTIVE_SYMBOL = bytes([0x00, 0x18, 0x3C, 0x7E, 0x7E, 0x3C, 0x18, 0x00])
INACTIVE_SYMBOL = bytes([0x00, 0x00, 0x00, 0x18, 0x18, 0x00, 0x00, 0x00])

DEFAULT_UPDATE_INTERVAL = 33
DEFAULT_TIME_PER_FRAME = 5000
DEFAULT_TIME_PER_TRANSITION = 500


def _millis() -> int:
    return int(time.monotonic() * 1000) & _MASK32


class AnimationDirection(IntEnum):
    SLIDE_UP = 0
    SLIDE_DOWN = 1
    SLIDE_LEFT = 2
    SLIDE_RIGHT = 3


class IndicatorPosition(IntEnum):
    TOP = 0
    RIGHT = 1
    BOTTOM = 2
    LEFT = 3


class IndicatorDirection(IntEnum):
    LEFT_RIGHT = 0
    RIGHT_LEFT = 1


class FrameState(IntEnum):
    IN_TRANSITION = 0
    FIXED = 1


@dataclass
class UiState:
    """The state handed to frame and overlay callbacks."""

    last_update: int = 0
    ticks_since_last_state_switch: int = 0
    frame_state: FrameState = FrameState.FIXED
    current_frame: int = 0
    is_indicator_drawn: bool = True
    frame_transition_direction: int = 1
    manual_control: bool = False
    user_data: Any = None


@dataclass
class LoadingStage:
    """One step of a loading screen: its label and the work it runs."""

    process: str
    callback: Callable[[], None]


FrameCallback = Callable[[DisplaySurface, UiState, int, int], None]
OverlayCallback = Callable[[DisplaySurface, UiState], None]
LoadingDrawFunction = Callable[[DisplaySurface, LoadingStage, int], None]


def default_loading_draw(display: DisplaySurface, stage: LoadingStage, progress: int) -> None:
    """Draw the stage label centred above a progress bar."""
    display.set_text_alignment(TextAlignment.CENTER)
    display.set_font("ArialMT_Plain_10")
    display.draw_string(64, 18, stage.process)
    display.draw_progress_bar(4, 32, 120, 8, progress)


class DisplayUi:
    """Cycles through frames on a display with animated transitions."""

    def __init__(
        self,
        display: DisplaySurface,
        clock: Callable[[], int] = _millis,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.display = display
        self.clock = clock
        self.sleep = sleep

        self.indicator_position = IndicatorPosition.BOTTOM
        self.indicator_direction = IndicatorDirection.LEFT_RIGHT
        self.active_symbol: Sequence[int] = ACTIVE_SYMBOL
        self.inactive_symbol: Sequence[int] = INACTIVE_SYMBOL
        self.frame_animation = AnimationDirection.SLIDE_RIGHT
        self.should_draw_indicators = True
        self.auto_transition = True
        self.loading_draw: LoadingDrawFunction = default_loading_draw

        self.frames: list[FrameCallback] = []
        self.overlays: list[OverlayCallback] = []
        self.last_transition_direction = 1
        self.next_frame_number = -1
        self.indicator_draw_state = 1

        self.state = UiState()
        self.update_interval = DEFAULT_UPDATE_INTERVAL
        self.time_per_frame = 0
        self.time_per_transition = 0
        self.ticks_per_frame = 0
        self.ticks_per_transition = 0
        self.set_time_per_frame(DEFAULT_TIME_PER_FRAME)
        self.set_time_per_transition(DEFAULT_TIME_PER_TRANSITION)

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def set_target_fps(self, fps: int) -> None:
        """Set the refresh rate and recompute the tick counts."""
        if fps <= 0:
            raise ValueError(f"fps must be positive, got {fps}")
        interval = int((1.0 / fps) * 1000)
        if interval <= 0:
            raise ValueError(f"fps {fps} is too high")
        self.update_interval = interval
        self.ticks_per_frame = (self.time_per_frame // interval) & _MASK16
        self.ticks_per_transition = (self.time_per_transition // interval) & _MASK16

    def set_time_per_frame(self, time: int) -> None:
        """Approximate time in ms a frame stays on screen."""
        self.time_per_frame = time
        self.ticks_per_frame = (time // self.update_interval) & _MASK16

    def set_time_per_transition(self, time: int) -> None:
        """Approximate time in ms a transition takes."""
        self.time_per_transition = time
        self.ticks_per_transition = (time // self.update_interval) & _MASK16

    def set_auto_transition_forwards(self) -> None:
        self.state.frame_transition_direction = 1
        self.last_transition_direction = 1

    def set_auto_transition_backwards(self) -> None:
        self.state.frame_transition_direction = -1
        self.last_transition_direction = -1

    def enable_indicator(self) -> None:
        """Draw the indicator for the current frame."""
        self.state.is_indicator_drawn = True

    def disable_indicator(self) -> None:
        """Hide the indicator for the current frame."""
        self.state.is_indicator_drawn = False

    def set_frames(self, frames: Sequence[FrameCallback]) -> None:
        """Replace the frame callbacks and start again from the first frame."""
        self.frames = list(frames)
        self._reset_state()

    def set_overlays(self, overlays: Sequence[OverlayCallback]) -> None:
        """Replace the overlay callbacks drawn on top of every frame."""
        self.overlays = list(overlays)

    def run_loading_process(self, stages: Sequence[LoadingStage]) -> None:
        """Show each stage with growing progress while running its callback."""
        stages = list(stages)
        if not stages:
            raise ValueError("at least one loading stage is needed")
        increment = (100 // len(stages)) & 0xFF
        progress = 0
        for stage in stages:
            self.display.clear()
            self.loading_draw(self.display, stage, progress)
            self.display.display()
            stage.callback()
            progress = (progress + increment) & 0xFF
        self.display.clear()
        self.loading_draw(self.display, stages[-1], progress)
        self.display.display()
        self.sleep(0.15)

    def _begin_manual_transition(self, direction: int) -> None:
        if self.state.frame_state == FrameState.IN_TRANSITION:
            return
        self.state.manual_control = True
        self.state.frame_state = FrameState.IN_TRANSITION
        self.state.ticks_since_last_state_switch = 0
        self.last_transition_direction = self.state.frame_transition_direction
        self.state.frame_transition_direction = direction

    def next_frame(self) -> None:
        """Start a transition to the following frame."""
        self._begin_manual_transition(1)

    def previous_frame(self) -> None:
        """Start a transition to the preceding frame."""
        self._begin_manual_transition(-1)

    def switch_to_frame(self, frame: int) -> None:
        """Show frame at once, without a transition; out-of-range frames are ignored."""
        if frame >= self.frame_count:
            return
        self.state.ticks_since_last_state_switch = 0
        if frame == self.state.current_frame:
            return
        self.state.frame_state = FrameState.FIXED
        self.state.current_frame = frame
        self.state.is_indicator_drawn = True

    def transition_to_frame(self, frame: int) -> None:
        """Animate to frame, backwards if it comes before the current one."""
        if frame >= self.frame_count:
            return
        self.state.ticks_since_last_state_switch = 0
        if frame == self.state.current_frame:
            return
        self.next_frame_number = frame
        self.last_transition_direction = self.state.frame_transition_direction
        self.state.manual_control = True
        self.state.frame_state = FrameState.IN_TRANSITION
        self.state.frame_transition_direction = -1 if frame < self.state.current_frame else 1

    def update(self) -> int:
        """Tick if the update interval has passed; return the ms left in the budget."""
        frame_start = self.clock()
        budget = self.update_interval - ((frame_start - self.state.last_update) & _MASK32)
        if budget <= 0:
            if self.auto_transition and self.state.last_update != 0:
                skipped = math.ceil(-budget / self.update_interval)
                self.state.ticks_since_last_state_switch = (
                    self.state.ticks_since_last_state_switch + skipped
                ) & _MASK16
            self.state.last_update = frame_start
            self.tick()
        return self.update_interval - ((self.clock() - frame_start) & _MASK32)

    def tick(self) -> None:
        """Advance the frame state by one tick and redraw everything."""
        state = self.state
        state.ticks_since_last_state_switch = (state.ticks_since_last_state_switch + 1) & _MASK16
        if state.frame_state == FrameState.IN_TRANSITION:
            if state.ticks_since_last_state_switch >= self.ticks_per_transition:
                state.frame_state = FrameState.FIXED
                state.current_frame = self._next_frame_number()
                state.ticks_since_last_state_switch = 0
                self.next_frame_number = -1
        else:
            if state.manual_control:
                state.frame_transition_direction = self.last_transition_direction
                state.manual_control = False
            if state.ticks_since_last_state_switch >= self.ticks_per_frame:
                if self.auto_transition:
                    state.frame_state = FrameState.IN_TRANSITION
                state.ticks_since_last_state_switch = 0

        self.display.clear()
        self._draw_frame()
        if self.should_draw_indicators:
            self._draw_indicator()
        self._draw_overlays()
        self.display.display()

    def _reset_state(self) -> None:
        self.state.last_update = 0
        self.state.ticks_since_last_state_switch = 0
        self.state.frame_state = FrameState.FIXED
        self.state.current_frame = 0
        self.state.is_indicator_drawn = True

    def _transition_progress(self) -> float:
        if self.ticks_per_transition == 0:
            return 0.0
        return self.state.ticks_since_last_state_switch / self.ticks_per_transition

    def _draw_frame(self) -> None:
        if not self.frames:
            return
        state = self.state
        if state.frame_state == FrameState.FIXED:
            self.indicator_draw_state = 0
            self.enable_indicator()
            self.frames[state.current_frame](self.display, state, 0, 0)
            return

        progress = 0.0
        if self.ticks_per_transition > 0:
            progress = state.ticks_since_last_state_switch / self.ticks_per_transition
        width, height = self.display.width, self.display.height
        animation = self.frame_animation
        if animation == AnimationDirection.SLIDE_LEFT:
            x = int(-width * progress)
            y, x1, y1 = 0, x + width, 0
        elif animation == AnimationDirection.SLIDE_RIGHT:
            x = int(width * progress)
            y, x1, y1 = 0, x - width, 0
        elif animation == AnimationDirection.SLIDE_UP:
            y = int(-height * progress)
            x, x1, y1 = 0, 0, y + height
        else:
            y = int(height * progress)
            x, x1, y1 = 0, 0, y - height

        direction = 1 if state.frame_transition_direction >= 0 else -1
        x, y, x1, y1 = x * direction, y * direction, x1 * direction, y1 * direction

        self.enable_indicator()
        self.frames[state.current_frame](self.display, state, x, y)
        drawn_current = state.is_indicator_drawn

        self.enable_indicator()
        self.frames[self._next_frame_number()](self.display, state, x1, y1)
        drawn_next = state.is_indicator_drawn

        if drawn_current and not drawn_next:
            self.indicator_draw_state = 2
        elif not drawn_current and drawn_next:
            self.indicator_draw_state = 1
        elif not drawn_current and not drawn_next:
            self.indicator_draw_state = 3

        if not drawn_current:
            state.is_indicator_drawn = False

    def _draw_indicator(self) -> None:
        state = self.state
        if self.indicator_draw_state == 3 or (
            not state.is_indicator_drawn and state.frame_state != FrameState.IN_TRANSITION
        ):
            return

        highlight = (
            self._next_frame_number() if self.indicator_draw_state == 1 else state.current_frame
        )
        if self.indicator_direction == IndicatorDirection.LEFT_RIGHT:
            highlight_pos = highlight
        else:
            highlight_pos = (self.frame_count - highlight) & 0xFF

        fade = 0.0
        if self.indicator_draw_state == 1:
            fade = 1 - self._transition_progress()
        elif self.indicator_draw_state == 2:
            fade = self._transition_progress()

        spacing = 12
        if self.display.height < 64 and self.indicator_position in (
            IndicatorPosition.RIGHT,
            IndicatorPosition.LEFT,
        ):
            spacing = 6

        start = spacing * self.frame_count // 2
        width, height = self.display.width, self.display.height
        for i in range(self.frame_count):
            position = self.indicator_position
            if position == IndicatorPosition.TOP:
                y = int(0 - 8 * fade)
                x = width // 2 - start + 12 * i
            elif position == IndicatorPosition.BOTTOM:
                y = int((height - 8) + 8 * fade)
                x = width // 2 - start + 12 * i
            elif position == IndicatorPosition.RIGHT:
                x = int((width - 8) + 8 * fade)
                y = height // 2 - start + 2 + 12 * i
            else:
                x = int(0 - 8 * fade)
                y = height // 2 - start + 2 + spacing * i
            image = self.active_symbol if highlight_pos == i else self.inactive_symbol
            self.display.draw_fast_image(x, y, 8, 8, image)

    def _draw_overlays(self) -> None:
        for overlay in self.overlays:
            overlay(self.display, self.state)

    def _next_frame_number(self) -> int:
        if self.next_frame_number != -1:
            return self.next_frame_number
        if self.frame_count == 0:
            return self.state.current_frame
        return (
            self.state.current_frame + self.frame_count + self.state.frame_transition_direction
        ) % self.frame_count