"""
Default settings for terragrunt-nav.

These are the default values used when no user configuration exists.
"""

DEFAULT_SETTINGS = {
    "version": "1.0.0",

    # Optional behavior
    "feature_toggles": {
        "ReplaceStrings": True,
        "AddTerragruntCacheToWorkspace": True,
    },

    # Path rewrite pipeline, applied in order
    "replacement_strings": [
        {"find": "", "replace": ""},
    ],

    # Number of rules offered by the quick replacement editor
    "quick_replace_strings_count": 1,

    # Module directory cache
    "max_cache_size": 10,

    # Remote modules
    "repo_cache_dir": "",  # empty means ~/.terragrunt-repo-cache
    "clone_cooldown_seconds": 3000,
    "clone_timeout_seconds": 300,

    # Clone target directory -> last clone time (epoch seconds)
    "last_cloned_map": {},
}

FEATURE_TOGGLES = ("ReplaceStrings", "AddTerragruntCacheToWorkspace")
