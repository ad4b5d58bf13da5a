"""
Global default assumptions for the solar financial model.

These settings define the process-wide defaults that every simulation starts
from. Individual runs override them through FinancialAssumptions, never by
mutating this module.

Values reflect a Québec commercial rooftop context: hydro-dominated grid,
net metering (surplus production credited at the energy rate), and the
utility "autoproduction" incentive stacked with the federal ITC.
"""

# Analysis horizon [years]
HORIZON_YEARS = 25

# LCOE uses a truncated production horizon [years].
# Kept separate from HORIZON_YEARS: changing it materially moves the ¢/kWh figure.
LCOE_HORIZON_YEARS = 20

# Escalation and degradation [fraction per year]
TARIFF_INFLATION = 0.048
DEGRADATION_RATE = 0.004

# Annual O&M as fraction of gross CAPEX [1/year]
OM_RATE = 0.01

# Discount rate (WACC) used for NPV
DISCOUNT_RATE = 0.08

# Installed costs
COST_PER_WATT = 1.50         # [$/W] PV, turnkey
BATTERY_ENERGY_COST = 550.0  # [$/kWh]
BATTERY_POWER_COST = 800.0   # [$/kW]

# Specific yield [kWh/kWp/year]
IRRADIANCE_YIELD = 1250.0

# Utility incentive: per-kW rate with two hard caps
UTILITY_INCENTIVE_PER_KW = 1000.0          # [$/kW]
UTILITY_INCENTIVE_CAP_FRACTION = 0.40      # [fraction of gross CAPEX]
UTILITY_INCENTIVE_ABSOLUTE_CAP = 1_000_000.0  # [$] program limit (1 MW at $1000/kW)

# Federal investment tax credit [fraction of incentive-reduced cost]
ITC_RATE = 0.30

# Accelerated depreciation (CCA) tax shield, disabled unless requested
INCLUDE_TAX_SHIELD = False
TAX_RATE = 0.265
DEPRECIATION_FRACTION = 0.90

# Battery value and dispatch approximation
DEMAND_CHARGE = 17.573                   # [$/kW-month]
PEAK_SHAVING_FRACTION = 0.10             # max share of peak demand a battery shaves
SOLAR_COINCIDENCE_FRACTION = 0.70        # share of PV output consumed on the spot
BATTERY_ROUND_TRIP_EFFICIENCY = 0.90
BATTERY_CYCLES_PER_YEAR = 250.0

# Grid emission factor [kg CO2/kWh]
GRID_EMISSION_FACTOR = 0.002

# Roof geometry for the PV ceiling
SQFT_PER_M2 = 10.764
ROOF_UTILIZATION = 0.80
PANEL_FOOTPRINT_M2 = 3.71
PANEL_POWER_KW = 0.660

# Portfolio volume discount: (minimum buildings, discount fraction)
VOLUME_DISCOUNT_TIERS = ((5, 0.05), (10, 0.10), (20, 0.15))
VOLUME_DISCOUNT_CEILING = 0.15

# Design mandate quote (per-building study costs) [$]
TRAVEL_COST_PER_DAY = 150.0
BUILDINGS_PER_TRAVEL_DAY = 3
VISIT_COST_PER_BUILDING = 600.0
EVALUATION_COST_PER_BUILDING = 1000.0
DIAGRAMS_COST_PER_BUILDING = 1900.0
GST_RATE = 0.05
QST_RATE = 0.09975

# Financing structures compared against a cash purchase
LEASE_TERM_YEARS = 7
LEASE_PREMIUM = 0.15              # [fraction] lessor margin on the financed amount
PPA_TERM_YEARS = 16
PPA_DISCOUNT = 0.40               # [fraction] PPA price below the grid energy rate
PPA_RATE_INFLATION = 0.03         # [fraction per year] PPA price escalation
PPA_POST_TERM_OM_RATE = 0.07      # [fraction of solar value] O&M after the PPA hands over
CCA_RATE = 0.50                   # [fraction per year] declining-balance CCA, half in year 1

# Monte Carlo uncertainty ranges: (low, high), sampled uniformly
MONTE_CARLO_ITERATIONS = 500
MC_TARIFF_INFLATION_RANGE = (0.025, 0.035)
MC_DISCOUNT_RATE_RANGE = (0.06, 0.08)
MC_IRRADIANCE_YIELD_RANGE = (1075.0, 1225.0)  # [kWh/kWp/year] monofacial
MC_BIFACIAL_BOOST_RANGE = (0.10, 0.20)        # [fraction] added to the yield
MC_OM_PER_KW_RANGE = (10.0, 20.0)             # [$/kWp/year]
MC_COST_PER_WATT_RANGE = (1.75, 2.35)         # [$/W]
