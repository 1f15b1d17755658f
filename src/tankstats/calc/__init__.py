# flake8: noqa
# importing the package registers the pandas accessors (pd.DataFrame.pulls, .performance)
import calc.performance
import calc.production
