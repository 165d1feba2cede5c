from abc import ABC, abstractmethod


class PackageManager(ABC):
    name = "unknown"

    @abstractmethod
    def install(self, package):
        pass

    @abstractmethod
    def get_install_command(self, package: str) -> str:
        pass
