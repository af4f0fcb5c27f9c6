"""
Display metadata attached to each body: label appearance and trajectory
plot settings.
"""
from typing import Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import MAX_PLOT_SAMPLES, MIN_PLOT_SAMPLES
from .units import color_value, double_value, duration_value

Color = Tuple[float, float, float]


class BodyInfo(BaseModel):
    """
    Label and trajectory plot settings for a body.
    """
    label_color: Color = Field(
        (1.0, 1.0, 1.0),
        description="RGB color of the body's label"
    )
    label_fade_size: float = Field(
        0.0,
        description="Apparent size below which the label fades out"
    )
    trajectory_plot_color: Optional[Color] = Field(
        None,
        description="RGB color of the trajectory plot; defaults to the label color"
    )
    trajectory_plot_duration: float = Field(
        0.0,
        description="Plotted span of the trajectory in seconds; 0 uses the renderer's default"
    )
    trajectory_plot_samples: int = Field(
        MIN_PLOT_SAMPLES,
        description="Number of samples in the trajectory plot"
    )
    trajectory_plot_lead: float = Field(
        0.0,
        description="Time in seconds the plot extends ahead of the current time"
    )
    trajectory_plot_fade: float = Field(
        0.0,
        description="Fraction of the plot over which it fades, 0 to 1"
    )

    @field_validator('trajectory_plot_samples')
    @classmethod
    def clamp_samples(cls, v):
        return max(MIN_PLOT_SAMPLES, min(MAX_PLOT_SAMPLES, v))

    @field_validator('trajectory_plot_fade')
    @classmethod
    def clamp_fade(cls, v):
        return max(0.0, min(1.0, v))

    @model_validator(mode='after')
    def default_plot_color(self):
        if self.trajectory_plot_color is None:
            self.trajectory_plot_color = self.label_color
        return self


def load_body_info(item: dict) -> BodyInfo:
    """
    Build the display metadata for a body item from its ``label`` and
    ``trajectoryPlot`` objects. Either may be absent.
    """
    values = {}

    label = item.get('label')
    if isinstance(label, dict):
        if label.get('color') is not None:
            values['label_color'] = color_value(label['color'])
        if label.get('fadeSize') is not None:
            values['label_fade_size'] = double_value(label['fadeSize'], 0.0)

    plot = item.get('trajectoryPlot')
    if isinstance(plot, dict):
        if isinstance(plot.get('sampleCount'), (int, float)) and not isinstance(plot['sampleCount'], bool):
            values['trajectory_plot_samples'] = int(plot['sampleCount'])
        if plot.get('duration') is not None:
            values['trajectory_plot_duration'] = duration_value(plot['duration'], 'd')
        if plot.get('lead') is not None:
            values['trajectory_plot_lead'] = duration_value(plot['lead'], 'd')
        if isinstance(plot.get('fade'), (int, float)) and not isinstance(plot['fade'], bool):
            values['trajectory_plot_fade'] = float(plot['fade'])
        if plot.get('color') is not None:
            values['trajectory_plot_color'] = color_value(plot['color'])

    return BodyInfo(**values)
