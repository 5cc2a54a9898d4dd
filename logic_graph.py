"""
Graph and plot views of a formula and its truth table.

Main features:
- Sub-expression graph: networkx DiGraph from each operand to the compound using it
- Static drawing of the graph and of the truth-table matrix with matplotlib
- Interactive HTML export of the graph with pyvis
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Tuple

import matplotlib.pyplot as plt
import networkx as nx
from pyvis.network import Network

from propositional import Binary, Not, Var, parse
from truth_table import Table, build

logger = logging.getLogger(__name__)

CONNECTIVE_NAMES: Dict[str, str] = {
    "¬": "NOT",
    "∧": "AND",
    "∨": "OR",
    "→": "IMPLIES",
    "↔": "IFF",
    "⊕": "XOR",
    "↑": "NAND",
    "↓": "NOR",
}


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------


def build_subexpression_graph(formula: str, table: Optional[Table] = None) -> Any:
    """Build a directed graph of the sub-expressions of ``formula``.

    Nodes: every variable and sub-expression, keyed by its text.
    Node attributes:
        kind: "variable", "negation", "binary" or "malformed"
        truth_vector: tuple of 0/1 over the table rows
        is_result: True for the node of the whole formula

    Edges go from each operand to the compound that uses it, with
    ``reason`` set to the connective name (NOT, AND, ...).

    Parameters
    ----------
    table:
        Table of ``formula`` if already built; built here otherwise.
    """
    if table is None:
        table = build(formula)
    root = parse(formula.strip())

    g = nx.DiGraph()

    def truth_vector(label: str) -> Tuple[int, ...]:
        return tuple(int(bit) for bit in table.column(label))

    for node in root.subformulas():
        if node.text in g:
            continue
        if isinstance(node, Var):
            kind = "variable"
        elif isinstance(node, Not):
            kind = "negation"
        elif isinstance(node, Binary):
            kind = "binary"
        else:
            kind = "malformed"
        try:
            vector = truth_vector(node.text)
        except KeyError:
            # empty fragments of malformed input have no column
            vector = ()
        g.add_node(node.text, kind=kind, truth_vector=vector, is_result=False)

        if isinstance(node, Not):
            g.add_edge(node.operand.text, node.text, reason=CONNECTIVE_NAMES["¬"])
        elif isinstance(node, Binary):
            reason = CONNECTIVE_NAMES[node.symbol]
            if node.left.text == node.right.text:
                g.add_edge(node.left.text, node.text, reason=reason, side="both")
            else:
                g.add_edge(node.left.text, node.text, reason=reason, side="left")
                g.add_edge(node.right.text, node.text, reason=reason, side="right")

    g.nodes[root.text]["is_result"] = True
    return g


# ---------------------------------------------------------------------------
# Static drawing
# ---------------------------------------------------------------------------


def visualize_subexpression_graph(
    g: Any,
    layout: str = "spring",
    figsize: Tuple[int, int] = (10, 8),
    show_truth: bool = False,
) -> None:
    """Visualize a sub-expression graph using matplotlib."""

    if layout == "spring":
        pos = nx.spring_layout(g, seed=42)
    elif layout == "kamada_kawai":
        pos = nx.kamada_kawai_layout(g)
    else:
        pos = nx.circular_layout(g)

    plt.figure(figsize=figsize)
    node_colors = []
    labels: Dict[str, str] = {}
    for node, data in g.nodes(data=True):
        if data.get("is_result"):
            node_colors.append("orange")
        elif data.get("kind") == "variable":
            node_colors.append("lightgreen")
        elif data.get("kind") == "malformed":
            node_colors.append("lightgray")
        else:
            node_colors.append("skyblue")
        if show_truth:
            labels[node] = f"{node}\n{''.join(map(str, data.get('truth_vector', ())))}"
        else:
            labels[node] = node

    nx.draw_networkx_nodes(g, pos, node_color=node_colors, edgecolors="black")
    nx.draw_networkx_labels(g, pos, labels=labels, font_size=8)
    nx.draw_networkx_edges(g, pos, arrows=True, arrowsize=10)
    plt.title(f"Sub-expressions ({g.number_of_nodes()} nodes)")
    plt.axis("off")
    plt.tight_layout()
    plt.show()


def plot_truth_table(table: Table, title: Optional[str] = None) -> None:
    """
    Plot the truth table as a matrix image.

    Each row is an assignment, each column a variable or sub-expression,
    true cells bright and false cells dark.
    """
    matrix = table.to_dataframe().to_numpy(dtype=int)

    plt.imshow(matrix, aspect="auto", interpolation="nearest")
    plt.xticks(range(len(table.header)), table.header, rotation=45, ha="right")
    plt.ylabel("Row")

    if title is None:
        title = f"Truth table of {table.formula}"
    plt.title(title)

    plt.colorbar(label="Value")
    plt.tight_layout()
    plt.show()


# ---------------------------------------------------------------------------
# Interactive export
# ---------------------------------------------------------------------------


def export_to_html(
    g: Any,
    output_file: str = "subexpressions.html",
    height: str = "800px",
    width: str = "100%",
    notebook: bool = False,
) -> str:
    """Export a sub-expression graph to interactive HTML using pyvis.

    Parameters
    ----------
    g:
        NetworkX DiGraph from build_subexpression_graph.
    output_file:
        Path to save HTML file. A bare file name is placed in "graphs/".
    height:
        Height of visualization area.
    width:
        Width of visualization area.
    notebook:
        If True, configure for Jupyter notebook display.

    Returns
    -------
    str
        The path the page was written to.
    """

    net = Network(height=height, width=width, directed=True, notebook=notebook)

    color_map = {
        "result": "#FF8C00",  # orange for the whole formula
        "variable": "#90EE90",  # lightgreen
        "malformed": "#D3D3D3",  # lightgray
        "other": "#87CEEB",  # skyblue
    }

    for node, data in g.nodes(data=True):
        kind = data.get("kind", "other")
        if data.get("is_result"):
            color = color_map["result"]
        else:
            color = color_map.get(kind, color_map["other"])

        truth_str = "".join(map(str, data.get("truth_vector", ())))
        tooltip = f"{node}\n"
        tooltip += f"Kind: {kind}\n"
        tooltip += f"Truth vector: {truth_str}"

        net.add_node(
            node,
            label=node,
            color=color,
            title=tooltip,
            size=20,
            font={"size": 12},
        )

    for source, target, data in g.edges(data=True):
        reason = data.get("reason", "")
        net.add_edge(source, target, title=reason, arrows="to", label=reason)

    net.set_options("""
    {
      "layout": {
        "hierarchical": {
          "enabled": true,
          "direction": "DU",
          "sortMethod": "directed"
        }
      },
      "physics": {
        "enabled": false
      },
      "interaction": {
        "hover": true,
        "tooltipDelay": 100,
        "navigationButtons": true,
        "keyboard": true
      }
    }
    """)

    graphs_dir = "graphs"
    if os.path.dirname(output_file) == "":
        os.makedirs(graphs_dir, exist_ok=True)
        output_file = os.path.join(graphs_dir, output_file)

    net.save_graph(output_file)
    logger.info("Interactive graph saved to %s", output_file)
    return output_file
