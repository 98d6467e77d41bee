# Copyright (c) 2025 GeoCarto developers
#
# This file is part of the GeoCarto project.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
#
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Reactive web application exploring the thematic maps of a vector, with shiny."""

from __future__ import annotations

from typing import Any, Sequence

import geocarto as gc
from geocarto import mapping as gm
from geocarto._config import config
from geocarto._misc import import_optional


def _map_figure(vector: gc.Vector, column: str, n: int, style: str | None = None, title: str | None = None) -> Any:
    """Render the map of an attribute of the vector, as displayed by the application."""
    layer = gm.polygons if vector.geom_family == "polygon" else gm.lines if vector.geom_family == "line" else gm.dots
    m = gm.shape(vector) + layer(col=column, n=n, style=style) + gm.layout(title=title)
    return m.plot()


def create_app(
    vector: gc.Vector,
    column_choices: Sequence[str] | None = None,
    title: str = "GeoCarto",
    style: str | None = None,
) -> Any:
    """
    Create a shiny application mapping an attribute of a vector, selected by the user along with the number of
    classes.

    The application is run with `shiny run`, or with `app.run()`.

    :param vector: Vector to map.
    :param column_choices: Attributes the user can select, defaults to all numeric attributes.
    :param title: Title of the application page.
    :param style: Classification style of the attribute.

    :returns: Shiny App.
    """
    shiny = import_optional("shiny", extra_name="app")

    if column_choices is None:
        numeric = vector.ds.select_dtypes("number").columns
        column_choices = [c for c in numeric if c != vector.ds.geometry.name]
    column_choices = list(column_choices)
    if len(column_choices) == 0:
        raise ValueError("The application requires at least one attribute to map.")
    missing = [c for c in column_choices if c not in vector.columns]
    if len(missing) > 0:
        raise ValueError(f"Attribute(s) {missing} not found in vector columns {list(vector.columns)}.")

    ui = shiny.ui
    app_ui = ui.page_sidebar(
        ui.sidebar(
            ui.input_select(id="column", label="Attribute", choices=column_choices, selected=column_choices[0]),
            ui.input_slider(id="n", label="Number of classes", min=2, max=10, value=config["default_n_classes"]),
        ),
        ui.output_plot("map_plot"),
        title=title,
    )

    def server(input: Any, output: Any, session: Any) -> None:
        @shiny.render.plot
        def map_plot() -> Any:
            return _map_figure(vector, input.column(), input.n(), style=style, title=input.column())

    return shiny.App(app_ui, server)
