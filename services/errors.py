class NotFoundError(KeyError):
    """A requested resource does not exist for the calling user."""

    def __init__(self, resource: str, resource_id: str):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} '{resource_id}' not found.")

    def __str__(self) -> str:
        return self.args[0]


class DatasetNotFoundError(NotFoundError):
    def __init__(self, dataset_id: str):
        super().__init__("Dataset", dataset_id)


class FormulaNotFoundError(NotFoundError):
    def __init__(self, formula_id: str):
        super().__init__("Chart formula", formula_id)


class SavedChartNotFoundError(NotFoundError):
    def __init__(self, chart_id: str):
        super().__init__("Saved chart", chart_id)


class ShareLinkNotFoundError(NotFoundError):
    def __init__(self, url_id: str):
        super().__init__("Share link", url_id)


class TextGenerationError(RuntimeError):
    """The text-generation collaborator failed or returned nothing usable."""


class FormulaMappingError(ValueError):
    """A column mapping does not satisfy a formula's required columns."""
