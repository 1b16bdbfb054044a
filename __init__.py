"""
Simple Bot - Rule-driven chat bot
=================================

A small chat bot that reacts to messages with configured rules. A rule
pairs a trigger (whole-word text or a regex) with a fixed response, an
external command or a shell snippet. Rules come from three layers:
- Static rules from the settings file and its includes
- Builtin administrative commands (.help, .list, .add, .del, .reload, .quit)
- Dynamic rules added at runtime and saved to a YAML file

Author: Simple Bot Team
License: MIT
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Simple Bot Team"
__license__ = "MIT"
