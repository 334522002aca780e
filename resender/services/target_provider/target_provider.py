from abc import ABC
import abc
from typing import Dict


class TargetNotFoundError(Exception):
    pass


class TargetProvider(ABC):
    """
    Resolves the name an operator uses for a replay target to the URL records are posted to.
    """

    @abc.abstractmethod
    def get_all_targets(self) -> Dict[str, str]:
        """
        Returns the full name to URL table.
        """
        pass

    def resolve(self, name: str) -> str:
        """
        Returns the URL of a target or raises TargetNotFoundError. Names are matched case-insensitively.
        """
        targets = self.get_all_targets()
        if name in targets:
            return targets[name]
        for target_name, url in targets.items():
            if target_name.lower() == name.lower():
                return url
        raise TargetNotFoundError(
            f"Unknown target '{name}', known targets are: {', '.join(sorted(targets)) or 'none'}"
        )
