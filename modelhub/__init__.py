"""
Model Hub Service

A REST service for uploading, inspecting and running inference on
pre-trained PyTorch models held in process memory.
"""

__version__ = "1.0.0"
