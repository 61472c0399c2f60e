"""
Core logic package.

Combinators, conditional wrappers, route matching and the pipeline runner.
Modules are imported directly (e.g. ``core.combinators``) to keep the model
package free of import cycles.
"""
