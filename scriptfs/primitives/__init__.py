# scriptfs Primitives Directory
"""
This directory contains primitive operation implementations for scriptfs.
Each sub-package is a namespace; each non-underscore module in it exposes a
`PrimitiveSpec` contract plus a `KERNEL`, resolved by `PrimitiveRegistry`.
"""
