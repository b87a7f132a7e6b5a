# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
lantern model package.

A single affine layer followed by a softmax over classes:
  probabilities = softmax(x @ W.T + b)
"""
