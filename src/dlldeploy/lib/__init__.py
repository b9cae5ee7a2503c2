"""
# dlldeploy Core Library

This package contains the building blocks the CLI is made of: dependency
inspection, search path construction, closure resolution and deployment,
plus the shared configuration and logging infrastructure.
"""
