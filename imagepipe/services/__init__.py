"""
Services for imagepipe.

Submodules are imported directly (``imagepipe.services.image_pipeline``,
``imagepipe.services.logger``).
"""
