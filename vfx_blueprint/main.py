#!/usr/bin/env python
"""
VFX Blueprint CLI - Generate baked particle animations

Usage:
    vfx-blueprint generate [effect] [options]
    vfx-blueprint import <file.particle.json> [options]
    vfx-blueprint list

Examples:
    vfx-blueprint generate tornado                # Built-in preset
    vfx-blueprint generate aura --count 40 --json # Full blueprint as JSON
    vfx-blueprint generate --random --seed 7      # Random parameters
    vfx-blueprint import flame.particle.json      # Convert a Snowstorm file
"""

import argparse
import json
import logging
import sys
import traceback

from .core import (
    DEFAULT_REGISTRY, PARTICLE_SHAPES,
    AnimationType, EmissionShape, create_random_params,
)
from .importer import SnowstormImportError, load_snowstorm_file
from .procedural import build_blueprint


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='vfx-blueprint',
        description="Deterministic procedural particle-effect blueprints",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  generate  - Bake a blueprint from a preset or random parameters
  import    - Convert a Snowstorm (Bedrock) particle file
  list      - Show styles, presets and particle shapes

Examples:
  %(prog)s generate fireball
  %(prog)s generate rainbow --arc-flow burst --json
  %(prog)s generate smoke --styles my_styles/ --count 120
  %(prog)s import magic.particle.json --blueprint
        """
    )
    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Show progress logging'
    )

    subparsers = parser.add_subparsers(dest='command')

    # Generate
    gen = subparsers.add_parser('generate', help='Bake a blueprint')
    gen.add_argument(
        'effect',
        nargs='?',
        default='fireball',
        help='Effect type (default: fireball)'
    )
    gen.add_argument('-c', '--count', type=int, default=None, help='Particle count')
    gen.add_argument('-l', '--lifetime', type=float, default=None, help='Lifetime in seconds')
    gen.add_argument(
        '-a', '--animation',
        choices=[a.value for a in AnimationType],
        default=None,
        help='Animation type'
    )
    gen.add_argument(
        '--shape',
        choices=[s.value for s in EmissionShape],
        default=None,
        help='Emission shape'
    )
    gen.add_argument(
        '--particle-shape',
        choices=list(PARTICLE_SHAPES),
        default=None,
        help='Particle geometry override'
    )
    gen.add_argument(
        '--arc-flow',
        choices=['continuous', 'burst'],
        default=None,
        help='Rainbow-arc flow mode (enables the arc emitter)'
    )
    gen.add_argument(
        '--loop',
        action='store_true',
        help='Loop particles over the lifetime'
    )
    gen.add_argument(
        '--random',
        action='store_true',
        help='Use random parameters instead of a preset'
    )
    gen.add_argument('--seed', type=int, default=None, help='Seed for --random')
    gen.add_argument(
        '--styles',
        action='append',
        default=[],
        metavar='PATH',
        help='YAML style file or directory (repeatable)'
    )
    gen.add_argument('--json', action='store_true', help='Print the blueprint as JSON')
    gen.add_argument('-o', '--output', default=None, help='Write the blueprint JSON to a file')

    # Import
    imp = subparsers.add_parser('import', help='Convert a Snowstorm particle file')
    imp.add_argument('input', help='Snowstorm .json file')
    imp.add_argument('--blueprint', action='store_true', help='Also bake the imported effect')
    imp.add_argument('--json', action='store_true', help='Print the result as JSON')

    # List
    subparsers.add_parser('list', help='Show styles, presets and particle shapes')

    return parser


def _emit_json(data, output=None):
    text = json.dumps(data, indent=2)
    if output:
        with open(output, 'w') as f:
            f.write(text)
        print(f"Output: {output}")
    else:
        print(text)


def _print_summary(blueprint):
    style = blueprint.style
    emitter = style.custom_emitter.value if style.custom_emitter else 'none'
    print(f"Particles: {blueprint.particle_count}")
    print(f"Keyframes: {len(blueprint.keyframe_times)} over {blueprint.duration:.2f}s")
    print(f"Custom emitter: {emitter}")
    print(f"Looping: {'yes' if blueprint.loops else 'no'}")


def cmd_generate(args):
    registry = DEFAULT_REGISTRY
    for path in args.styles:
        registry = registry.load_yaml(path)

    if args.random:
        params = create_random_params(args.seed, registry)
        print(f"Random effect: {params.effect_type} (seed {args.seed})", file=sys.stderr)
    else:
        params = registry.build_preset_params(args.effect)

    if args.count is not None:
        params.particle_count = args.count
    if args.lifetime is not None:
        params.lifetime = args.lifetime
    if args.animation:
        params.animation_type = args.animation
    if args.shape:
        params.emission_shape = args.shape
    if args.particle_shape:
        params.particle_shape = args.particle_shape
    if args.arc_flow:
        params.use_arc_emitter = True
        params.arc_flow_mode = args.arc_flow
    if args.loop:
        params.emitter.loop_particles = True

    blueprint = build_blueprint(params, registry)
    if args.json or args.output:
        _emit_json(blueprint.to_dict(), args.output)
    else:
        print(f"Effect: {params.effect_type}")
        _print_summary(blueprint)


def cmd_import(args):
    result = load_snowstorm_file(args.input)
    params = result.params

    if args.json:
        data = {'params': params.to_dict(), 'warnings': list(result.warnings)}
        if args.blueprint:
            data['blueprint'] = build_blueprint(params).to_dict()
        _emit_json(data)
        return

    print(f"Imported: {params.effect_identifier}")
    print(f"  Shape: {params.emission_shape.value}  Spread: {params.spread:.2f}")
    print(f"  Count: {params.particle_count}  Lifetime: {params.lifetime:.2f}s")
    print(f"  Colors: {params.primary_color} -> {params.secondary_color}")
    if params.use_arc_emitter:
        print(f"  Rainbow arc: radius {params.arc_radius:.2f}")
    if params.emitter_motion is not None:
        axes = ', '.join(sorted(params.emitter_motion.axis_expressions))
        print(f"  Emitter motion axes: {axes}")
    if result.warnings:
        print("\nWarnings:")
        for warning in result.warnings:
            print(f"  - {warning}")
    if args.blueprint:
        print()
        _print_summary(build_blueprint(params))


def cmd_list(args):
    print("Styles:")
    for name in DEFAULT_REGISTRY.list_styles():
        style = DEFAULT_REGISTRY.get_effect_style(name)
        tag = f" [{style.custom_emitter.value}]" if style.custom_emitter else ""
        print(f"  {name}{tag}")
    print("\nPresets:")
    for name in DEFAULT_REGISTRY.list_presets():
        print(f"  {name}")
    print("\nParticle shapes:")
    for name in PARTICLE_SHAPES:
        print(f"  {name}")


COMMANDS = {
    'generate': cmd_generate,
    'import': cmd_import,
    'list': cmd_list,
}


def main(argv=None):
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(levelname)s %(name)s: %(message)s',
    )

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        COMMANDS[args.command](args)
    except SnowstormImportError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except (OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
