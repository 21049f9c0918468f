"""
Tags attached to the rules of the catalogue.
"""


class Tags:
    AEM = "aem"
    SLICE = "slice"
    SLING = "sling"
    BUG = "bug"
