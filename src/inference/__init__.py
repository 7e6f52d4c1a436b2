"""
Inference: model runners, tensor access, anchor decoding and NMS.
"""
