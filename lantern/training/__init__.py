# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
lantern training package.

Subsystems:
  - validation: hyperparameter and data checks
  - dataloader: dataset container, validation split, shuffled batches
  - optimizer: SGD factory and the update primitive
  - engine: the epoch loop and its stop conditions
  - checkpoint: per-epoch snapshots, in memory and on disk
  - metrics: per-epoch structured metrics
  - result: the fitted model object
  - fit: public entry points
"""
