import statistics
from pathlib import Path
from typing import Dict, List

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from bench.question import BenchmarkExecution, TestType


PUBLICATION_STYLE = {
    'figure.dpi': 150,
    'savefig.dpi': 150,
    'font.family': 'sans-serif',
    'font.sans-serif': ['Arial', 'DejaVu Sans'],
    'font.size': 10,
    'axes.labelsize': 10,
    'axes.titlesize': 11,
    'xtick.labelsize': 8,
    'ytick.labelsize': 8,
    'legend.fontsize': 8,
    'axes.linewidth': 0.8,
    'grid.linewidth': 0.5,
}

OKABE_ITO_COLORS = [
    '#E69F00', '#56B4E9', '#009E73', '#F0E442',
    '#0072B2', '#D55E00', '#CC79A7', '#999999',
    '#000000', '#DDCC77', '#117733', '#882255'
]


class ResultVisualizer:
    def __init__(self, output_dir: str):
        self.output_dir = Path(output_dir)
        self.charts_dir = self.output_dir / "charts"
        self.charts_dir.mkdir(parents=True, exist_ok=True)

        for key, value in PUBLICATION_STYLE.items():
            matplotlib.rcParams[key] = value

    def generate_all(self, execution: BenchmarkExecution) -> List[str]:
        paths = []
        for plot in (self.plot_model_rankings, self.plot_test_type_performance, self.plot_score_heatmap):
            path = plot(execution)
            if path:
                paths.append(path)
        return paths

    def _colors(self, n: int) -> List[str]:
        return [OKABE_ITO_COLORS[i % len(OKABE_ITO_COLORS)] for i in range(n)]

    def _calculate_figure_width(self, n_items: int) -> float:
        if n_items <= 5:
            return 10
        elif n_items <= 10:
            return 14
        else:
            return max(18, n_items * 1.2)

    def _style_axes(self, ax):
        ax.spines['top'].set_visible(False)
        ax.spines['right'].set_visible(False)
        ax.grid(axis='y', alpha=0.3, linestyle='--')
        ax.set_axisbelow(True)

    def _save_figure(self, filename_base: str) -> str:
        path = self.charts_dir / f'{filename_base}.png'
        plt.savefig(path, format='png', bbox_inches='tight')
        plt.close()
        return str(path)

    def plot_model_rankings(self, execution: BenchmarkExecution):
        rankings = execution.summary.model_rankings
        if not rankings:
            return None

        models = [r.model_name for r in rankings]
        scores = [r.average_score for r in rankings]
        per_model: Dict[str, List[float]] = {m: [] for m in models}
        for result in execution.results:
            if result.model_name in per_model:
                per_model[result.model_name].append(result.overall_score)
        stds = [statistics.stdev(per_model[m]) if len(per_model[m]) > 1 else 0 for m in models]

        fig, ax = plt.subplots(figsize=(self._calculate_figure_width(len(models)), 6))
        x = range(len(models))
        bars = ax.bar(x, scores, yerr=stds, capsize=5, color=self._colors(len(models)),
                      edgecolor='black', linewidth=0.8, alpha=0.9)

        ax.set_xlabel('Model')
        ax.set_ylabel('Average score (0-10)')
        ax.set_title('Model rankings')
        ax.set_xticks(list(x))
        ax.set_xticklabels([f'#{r.rank} {r.model_name}' for r in rankings],
                           rotation=45 if len(models) > 5 else 0, ha='right')
        ax.set_ylim(0, 10.5)
        self._style_axes(ax)

        for bar, score, std in zip(bars, scores, stds):
            ax.text(bar.get_x() + bar.get_width() / 2, bar.get_height() + std + 0.1,
                    f'{score:.1f}', ha='center', va='bottom', fontsize=8)

        plt.tight_layout()
        return self._save_figure('model_rankings')

    def plot_test_type_performance(self, execution: BenchmarkExecution):
        performance = execution.summary.test_type_performance
        if not performance:
            return None

        names = [TestType(k).display_name for k in performance]
        scores = [p.average_score for p in performance.values()]
        completion = [p.completion_rate for p in performance.values()]

        fig, ax = plt.subplots(figsize=(self._calculate_figure_width(len(names)), 6))
        x = list(range(len(names)))
        width = 0.4
        ax.bar([i - width / 2 for i in x], scores, width, label='Average score (0-10)',
               color=OKABE_ITO_COLORS[4], edgecolor='black', linewidth=0.8)
        ax2 = ax.twinx()
        ax2.bar([i + width / 2 for i in x], completion, width, label='Completion rate (%)',
                color=OKABE_ITO_COLORS[0], edgecolor='black', linewidth=0.8)

        ax.set_ylim(0, 10.5)
        ax2.set_ylim(0, 105)
        ax.set_ylabel('Average score')
        ax2.set_ylabel('Completion rate (%)')
        ax.set_xticks(x)
        ax.set_xticklabels(names, rotation=30, ha='right')
        ax.set_title('Performance by test type')
        self._style_axes(ax)

        handles = ax.get_legend_handles_labels()[0] + ax2.get_legend_handles_labels()[0]
        labels = ax.get_legend_handles_labels()[1] + ax2.get_legend_handles_labels()[1]
        ax.legend(handles, labels, loc='upper right')

        plt.tight_layout()
        return self._save_figure('test_type_performance')

    def plot_score_heatmap(self, execution: BenchmarkExecution):
        models = [r.model_name for r in execution.summary.model_rankings]
        types = [TestType(k) for k in execution.summary.test_type_performance]
        if not models or not types:
            return None

        cells: Dict[tuple, List[float]] = {}
        for result in execution.results:
            cells.setdefault((result.model_name, result.test_type), []).append(result.overall_score)
        data = [[statistics.mean(cells.get((m, t)) or [0]) for t in types] for m in models]

        fig, ax = plt.subplots(figsize=(max(8, len(types) * 1.5 + 2), max(4, len(models) * 0.5 + 2)))
        im = ax.imshow(data, cmap='viridis', aspect='auto', vmin=0, vmax=10)

        ax.set_xticks(range(len(types)))
        ax.set_xticklabels([t.display_name for t in types], rotation=30, ha='right')
        ax.set_yticks(range(len(models)))
        ax.set_yticklabels(models, fontsize=8 if len(models) > 8 else 10)

        for i in range(len(models)):
            for j in range(len(types)):
                ax.text(j, i, f'{data[i][j]:.1f}', ha='center', va='center',
                        color='white' if data[i][j] < 6 else 'black', fontsize=8)

        ax.set_title('Model x test type average score')
        fig.colorbar(im, ax=ax, label='Score (0-10)')

        plt.tight_layout()
        return self._save_figure('score_heatmap')
