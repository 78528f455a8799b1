"""Dataset loaders."""

from pal.loaders.csv_loader import (
    DatasetBundle,
    default_abilities,
    load_abilities_csv,
    load_dataset,
    load_dataset_dir,
    load_graph_csv,
    read_csv_rows,
)

__all__ = [
    "DatasetBundle",
    "default_abilities",
    "load_abilities_csv",
    "load_dataset",
    "load_dataset_dir",
    "load_graph_csv",
    "read_csv_rows",
]
