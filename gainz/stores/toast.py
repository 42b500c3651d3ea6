from typing import Literal

from gainz.stores.base import Store, synchronized

ToastType = Literal["success", "error", "info"]


class ToastStore(Store):
    def __init__(self):
        super().__init__()
        self.visible = False
        self.message = ""
        self.type: ToastType = "info"

    @synchronized
    def show_toast(self, message: str, type: ToastType = "info") -> None:
        self.set_state(visible=True, message=message, type=type)

    @synchronized
    def hide_toast(self) -> None:
        self.set_state(visible=False)
