"""
Filesystem namespace for scriptfs primitives

Directory creation, deletion and copy, path queries and directory listing.
Every module here is a thin adapter: coerce the script arguments to paths,
make exactly one filesystem call, convert the outcome back.
"""
