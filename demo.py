from __future__ import annotations
import matplotlib.pyplot as plt
import numpy as np
import multiprocessing as mp
from mcoptions import (
    OptionContract,
    Payoff,
    PricingFramework,
    PricingJob,
    RandomEngine,
    SchemeKind,
    format_report,
    write_reports,
)


def progress(completed: int, total: int):
    print(f"Progress: {completed}/{total} jobs ({100 * completed / total:.0f}%)")


def create_price_visualizations(outcome):
    """Terminal distribution and convergence of one pricing run."""
    result, stats = outcome.result, outcome.statistics
    fig, axes = plt.subplots(1, 2, figsize=(15, 6))
    fig.suptitle(f'{result.payoff_name} ({result.scheme_name}, {result.engine_name})',
                 fontsize=16,
                 fontweight='bold')

    # 1. Histogram of terminal asset values
    ax1 = axes[0]
    ax1.hist(result.asset_values,
             bins=60,
             alpha=0.7,
             density=True,
             color='skyblue',
             edgecolor='black')
    ax1.axvline(result.contract.strike,
                color='red',
                linestyle='-',
                linewidth=2,
                label=f'Strike = {result.contract.strike:.2f}')
    ax1.axvline(stats.mean_asset,
                color='orange',
                linestyle='--',
                linewidth=2,
                label=f'Mean = {stats.mean_asset:.4f}')
    ax1.set_xlabel('Terminal Asset Value ($)')
    ax1.set_ylabel('Density')
    ax1.set_title('Distribution of Terminal Asset Values')
    ax1.legend()
    ax1.grid(True, alpha=0.3)

    # 2. Running price estimate against the closed form
    ax2 = axes[1]
    discounted = result.discounted_payoffs
    n = np.arange(1, discounted.size + 1)
    running = np.cumsum(discounted) / n
    ax2.plot(n, running, color='blue', alpha=0.8, linewidth=1.5, label='Running estimate')
    ax2.fill_between(n,
                     running - 1.96 * stats.std / np.sqrt(n),
                     running + 1.96 * stats.std / np.sqrt(n),
                     alpha=0.2,
                     color='blue',
                     label='±1.96 SE')
    ax2.axhline(stats.exact_price,
                color='red',
                linestyle='-',
                linewidth=2,
                label=f'Black–Scholes = {stats.exact_price:.4f}')
    ax2.set_xlabel('Number of Paths')
    ax2.set_ylabel('Option Price ($)')
    ax2.set_title('Convergence to the Closed Form')
    ax2.set_xscale('log')
    ax2.legend()
    ax2.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def main():
    fw = PricingFramework()

    # Reproducible across backends
    fw.set_seed(43)

    contract = OptionContract(volatility=0.3,
                              rate=0.08,
                              expiry=0.25,
                              spot=60.0,
                              strike=65.0,
                              n_simulations=100_000,
                              n_steps=50)
    put = Payoff.european_put()

    fw.register_job(PricingJob("GBM", contract, SchemeKind.GBM, put))
    fw.register_job(PricingJob("Euler", contract, SchemeKind.EXPLICIT_EULER, put))
    fw.register_job(PricingJob("Milstein", contract, SchemeKind.MILSTEIN, put))
    fw.register_job(PricingJob("Milstein MT", contract, SchemeKind.MILSTEIN, put,
                               engine=RandomEngine.MERSENNE_TWISTER))
    fw.register_job(PricingJob("Asian Put", contract, SchemeKind.EXPLICIT_EULER,
                               Payoff.asian_put()))

    print("Running European and Asian put jobs…")
    outcomes = fw.run_many(backend="thread",
                           n_workers=4,
                           progress_callback=progress)

    for outcome in outcomes.values():
        print(format_report(outcome.result, outcome.statistics))
        print("\n")

    print("*" * 50)
    print("ABSOLUTE ERROR VS BLACK–SCHOLES:")
    comparison = fw.compare_results(["GBM", "Euler", "Milstein", "Milstein MT"], metric="error")
    for name, value in comparison.items():
        print(f"  {name}: {value:.5f}")
    print("*" * 50 + "\n")

    written = write_reports(outcomes.values(), "reports", fmt="both")
    print(f"Wrote {len(written)} report files to ./reports")

    # Create visualizations
    print("\nGenerating visualizations...")

    plt.style.use('default')
    plt.rcParams['figure.dpi'] = 100
    plt.rcParams['savefig.dpi'] = 300

    euler_fig = create_price_visualizations(outcomes["Euler"])
    asian_fig = create_price_visualizations(outcomes["Asian Put"])

    plt.show()

    save_plots = input("\nSave plots to files? (y/N): ").lower().strip() == 'y'
    if save_plots:
        euler_fig.savefig('euler_put_analysis.png',
                          bbox_inches='tight',
                          dpi=300)
        asian_fig.savefig('asian_put_analysis.png',
                          bbox_inches='tight',
                          dpi=300)
        print("Plots saved as PNG files!")


if __name__ == "__main__":

    try:
        mp.set_start_method("spawn", force=True)
    except RuntimeError:
        pass
    main()
