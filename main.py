#!/usr/bin/env python3
"""
Deep RL Arena - Main Entry Point
================================

Trains one Q-network for heroes and one for minions by letting them fight
in a two-team arena.

Usage:
    # Train with default settings
    python main.py

    # Short reproducible run on CPU
    python main.py --iterations 20000 --seed 42 --cpu

    # Train each gradient step right after a committed experience
    python main.py --train-policy on_commit

    # Continue from saved weights and save under a new directory
    python main.py --load models --save models/run2

    # Inference mode: no experiences are stored, nothing is trained
    python main.py --test --load models

Saved weights are named <network>_<tag>.pth (hero_final.pth, minion_ep100.pth).
"""

import argparse
import os
import sys

import numpy as np

from config import Config, TRAIN_POLICIES
from deeprl.ai.experience import InvariantError
from deeprl.sim.runner import ArenaRunner, build_networks
from deeprl.utils.logger import LogLevel, get_logger, setup_logging

logger = get_logger('main')


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Deep RL Arena - multi-agent Q-learning in a tick-based skirmish",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
EXAMPLES
========
    python main.py --iterations 100000        Train for 100k ticks
    python main.py --seed 7 --cpu             Reproducible CPU run
    python main.py --test --load models       Watch saved networks play
        """
    )

    parser.add_argument(
        '--iterations', type=int, default=None,
        help='Ticks to simulate across all epochs'
    )
    parser.add_argument(
        '--seed', type=int, default=None,
        help='Random seed (default: nondeterministic)'
    )
    parser.add_argument(
        '--cpu', action='store_true',
        help='Force CPU even if CUDA/MPS is available'
    )
    parser.add_argument(
        '--load', type=str, default=None, metavar='DIR',
        help='Directory to load <network>_final.pth weights from'
    )
    parser.add_argument(
        '--save', type=str, default=None, metavar='DIR',
        help='Directory for checkpoints (default: config MODEL_DIR)'
    )
    parser.add_argument(
        '--test', action='store_true',
        help='Inference mode: no replay, no training, no checkpoints'
    )
    parser.add_argument(
        '--log-level', type=str, default=None,
        choices=[level.name for level in LogLevel],
        help='Console and file log level'
    )
    parser.add_argument(
        '--train-policy', type=str, default=None, choices=TRAIN_POLICIES,
        help="'per_tick': train once per tick; 'on_commit': train on every stored experience"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> Config:
    """Apply command line overrides on top of the defaults."""
    overrides = {}
    if args.iterations is not None:
        overrides['ITERATIONS'] = args.iterations
    if args.seed is not None:
        overrides['SEED'] = args.seed
    if args.cpu:
        overrides['FORCE_CPU'] = True
    if args.save is not None:
        overrides['MODEL_DIR'] = args.save
    if args.log_level is not None:
        overrides['LOG_LEVEL'] = args.log_level
    if args.train_policy is not None:
        overrides['TRAIN_POLICY'] = args.train_policy
    return Config(**overrides)


def main(argv=None) -> int:
    """Main entry point. Returns the process exit status."""
    args = parse_args(argv)
    config = build_config(args)

    setup_logging(log_dir=config.LOG_DIR, level=LogLevel.from_name(config.LOG_LEVEL))

    if config.SEED is not None:
        import torch
        torch.manual_seed(config.SEED)

    networks = build_networks(config)
    runner = ArenaRunner(config, networks, rng=np.random.default_rng(
        None if config.SEED is None else config.SEED + 1))

    if args.load:
        runner.load_networks(args.load)

    if args.test:
        for network in runner.unique_networks():
            network.is_learning = False

    try:
        runner.run(config.ITERATIONS)
    except InvariantError as e:
        logger.critical(f"Invariant violated, aborting: {e}")
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        if not args.test:
            runner.save_networks(config.MODEL_DIR, tag='interrupted')
        return 130

    if not args.test:
        paths = runner.save_networks(config.MODEL_DIR, tag='final')
        logger.info(f"Saved {', '.join(os.path.basename(p) for p in paths)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
