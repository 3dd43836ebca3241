"""Mobile robot control building blocks: frames, serial coding, A/D input, formulas and trajectory control."""

__version__ = "1.22.5"