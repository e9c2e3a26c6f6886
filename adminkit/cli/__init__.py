"""
adminkit CLI.

Terminal front end for the generic admin pages: list, show, create, edit,
delete and linked-record lookup for every registered entity.
"""
