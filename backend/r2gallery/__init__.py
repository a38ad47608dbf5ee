"""
R2 Gallery: upload images to an S3-compatible bucket and show the latest ones.
"""
__version__ = "0.1.0"
