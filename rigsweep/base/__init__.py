"""Module __init__: foundational settings for rigsweep."""
#
# PURPOSE:
# Marks the "base" directory as a package holding the pieces every pass
# depends on.
#
# WHAT'S IN THIS MODULE:
# - config.py: Run settings (GC switches, bone-fold, logging)
#
