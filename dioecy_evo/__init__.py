"""dioecy-evo: deterministic evolution of inconstant males and dioecy.

Infinite-population, discrete-generation recurrences for the two models of
Ehlers & Bataillon (2007):
  - Model 1: one sex locus with alleles A, a, a* (6 genotypes)
  - Model 2: two unlinked loci A/a and M/m (9 genotypes)
  - Cosex pollen (Q) and ovule (F) allocation, selfing with inbreeding
    depression, pollen limitation, YY viability and Y-pollen viability
  - Sweeps over the (Q, F) plane, each cell classified as PGD, SSD, DIO,
    PAD, INC or NONE and rendered as a bitmap
"""

__version__ = "0.1.0"
