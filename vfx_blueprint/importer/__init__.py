"""
Importers - external particle formats to EffectParams
"""

from .expressions import (
    ExpressionError, ExpressionContext,
    parse_expression, evaluate, evaluate_text, parse_init_block,
    resolve_number, compile_axis_expression,
)
from .snowstorm import (
    SnowstormImportError, ImportResult, SnowstormConverter,
    convert_snowstorm, load_snowstorm_file,
)

__all__ = [
    # Expressions
    'ExpressionError', 'ExpressionContext',
    'parse_expression', 'evaluate', 'evaluate_text', 'parse_init_block',
    'resolve_number', 'compile_axis_expression',
    # Snowstorm
    'SnowstormImportError', 'ImportResult', 'SnowstormConverter',
    'convert_snowstorm', 'load_snowstorm_file',
]
