from dataclasses import dataclass
from typing import List
from PySide6.QtCore import Qt, QAbstractTableModel, QModelIndex


@dataclass(frozen=True)
class PackageRecord:
    name: str = ""
    repo: str = ""            # Sync repository (e.g. core, extra); empty for local-only packages
    repo_version: str = ""
    local_version: str = ""   # Installed version, empty if not installed
    description: str = ""

    @property
    def installed(self) -> bool:
        return bool(self.local_version)


class PackageModel(QAbstractTableModel):
    headers = ["Name", "Repository", "Version", "Installed", "Description"]

    ALL = "All"
    LOCAL = "local"

    def __init__(self, items: List[PackageRecord] | None = None):
        super().__init__()
        self._all: List[PackageRecord] = list(items or [])
        self._filtered: List[PackageRecord] = list(self._all)
        self._text_filter = ""
        self._repo_filter = self.ALL
        self._installed_only = False
        self._sort_column = 0
        self._sort_order = Qt.AscendingOrder

    def set_items(self, items: List[PackageRecord]):
        self.beginResetModel()
        self._all = list(items)
        self._apply_filters()
        self._apply_sort()
        self.endResetModel()

    def _apply_filters(self):
        t = self._text_filter.lower()
        repo = self._repo_filter
        def ok(it: PackageRecord) -> bool:
            if self._installed_only and not it.installed:
                return False
            if repo == self.LOCAL and it.repo:
                return False
            if repo not in (self.ALL, self.LOCAL) and it.repo != repo:
                return False
            if not t:
                return True
            return (t in it.name.lower()) or (t in it.description.lower())
        self._filtered = [it for it in self._all if ok(it)]

    def _apply_sort(self):
        """Sort the filtered list according to the selected column."""
        if not self._filtered:
            return

        attr_map = {
            0: 'name',
            1: 'repo',
            2: 'repo_version',
            3: 'local_version',
            4: 'description',
        }

        reverse = (self._sort_order == Qt.DescendingOrder)
        attr = attr_map.get(self._sort_column, 'name')

        def _sort_key(item: PackageRecord):
            # Ties fall back to the name so equal repos stay in a stable order
            return getattr(item, attr, '').lower(), item.name.lower()

        self._filtered.sort(key=_sort_key, reverse=reverse)

    def _refilter(self):
        self.beginResetModel()
        self._apply_filters()
        self._apply_sort()
        self.endResetModel()

    def set_text_filter(self, text: str):
        self._text_filter = text
        self._refilter()

    def set_repo_filter(self, repo: str):
        self._repo_filter = repo or self.ALL
        self._refilter()

    def set_installed_only(self, installed_only: bool):
        self._installed_only = installed_only
        self._refilter()

    def sort(self, column: int, order: Qt.SortOrder = Qt.AscendingOrder):
        """Implement sorting support for QTableView."""
        if column < 0 or column >= len(self.headers):
            return

        self.layoutAboutToBeChanged.emit()
        self._sort_column = column
        self._sort_order = order
        self._apply_sort()
        self.layoutChanged.emit()

    def total_count(self) -> int:
        return len(self._all)

    def filtered_count(self) -> int:
        return len(self._filtered)

    def all_items(self) -> List[PackageRecord]:
        return list(self._all)

    def repositories(self) -> List[str]:
        """Distinct repository names present in the model, sorted."""
        return sorted({it.repo for it in self._all if it.repo})

    # Qt model impl
    def rowCount(self, parent=QModelIndex()) -> int:
        return len(self._filtered)

    def columnCount(self, parent=QModelIndex()) -> int:
        return len(self.headers)

    def data(self, index, role=Qt.DisplayRole):
        if not index.isValid() or role not in (Qt.DisplayRole, Qt.EditRole):
            return None
        it = self._filtered[index.row()]
        values = [
            it.name,
            it.repo or self.LOCAL,
            it.repo_version,
            it.local_version,
            it.description,
        ]
        return values[index.column()]

    def headerData(self, section, orientation, role=Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            if 0 <= section < len(self.headers):
                return self.headers[section]
        return None

    def item_at(self, row: int) -> PackageRecord:
        return self._filtered[row]
