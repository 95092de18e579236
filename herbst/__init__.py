"""
herbst dashboard core: configuration schema, theming and live widget state.
"""
